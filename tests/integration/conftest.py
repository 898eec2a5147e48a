from __future__ import annotations

import os
from typing import Iterator

import psycopg
import pytest


@pytest.fixture(scope="session")
def dsn() -> str:
    """Test database DSN, integration tests are skipped without one."""
    # CLI/runtime uses UPLOAD_DSN.
    # tests have UPLOAD_TEST_DSN set.
    url = os.getenv("UPLOAD_TEST_DSN")
    if not url:
        pytest.skip("UPLOAD_TEST_DSN is not set")
    return url


@pytest.fixture()
def conn(dsn: str) -> Iterator[psycopg.Connection]:
    """
    A fresh connection per test. Autocommit ON so setup DDL never opens an outer
    transaction: every `conn.transaction()` block in the code under test is then a real commit.
    """
    with psycopg.connect(dsn, autocommit=True) as c:
        yield c


# Temporary (session-local) stand-in for the Anrok upload table. `varchar(2)`
# on the country code gives tests an easy way to provoke a DB-side failure.
ANROK_TABLE = """
CREATE TEMP TABLE anrok_transactions (
  transaction_id                   text PRIMARY KEY,
  customer_id                      text,
  customer_name                    text,
  overall_vat_id_validation_status text,
  valid_vat_ids                    text,
  other_vat_ids                    text,
  invoice_date                     date,
  tax_date                         date,
  transaction_currency             text,
  sales_amount                     numeric(18, 2),
  exempt_reasons                   text,
  tax_amount                       numeric(18, 2),
  invoice_amount                   numeric(18, 2),
  void                             boolean,
  customer_address_line_1          text,
  customer_address_city            text,
  customer_address_region          text,
  customer_address_postal_code     text,
  customer_address_country         text,
  customer_country_code            varchar(2),
  jurisdictions                    text,
  jurisdiction_ids                 text,
  return_ids                       text
)
"""


@pytest.fixture()
def anrok_table(conn: psycopg.Connection) -> psycopg.Connection:
    """`conn` with an empty temp `anrok_transactions` table (dropped with the session)."""
    with conn.cursor() as cur:
        cur.execute(ANROK_TABLE)
    return conn
