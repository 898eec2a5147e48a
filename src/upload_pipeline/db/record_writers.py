from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from psycopg import Connection, sql

from upload_pipeline.parsing.profiles.anrok import AnrokTransaction
from upload_pipeline.parsing.profiles.netsuite import NsInvoiceSalesTaxItem, NsSoLineItem
from upload_pipeline.parsing.profiles.salesforce import SfdcOppLineItem



@dataclass(frozen=True)
class TableWriteSpec:
    """Whitelisted upload-table contract used for safe SQL generation.

    Notes:
    - `columns` are the record dataclass' field names, in declaration order.
    - the table itself (and its keys) is owned by the database, not created here.
    """
    table_name: str
    record_type: type
    columns: tuple[str, ...]


def _spec(table_name: str, record_type: type) -> TableWriteSpec:
    return TableWriteSpec(
        table_name=table_name,
        record_type=record_type,
        columns=tuple(f.name for f in fields(record_type)),
    )


# wrap all upload table specs together.
TABLE_SPECS: dict[str, TableWriteSpec] = {
    s.table_name: s
    for s in (
        _spec("ns_so_line_items", NsSoLineItem),
        _spec("ns_invoice_sales_tax_items", NsInvoiceSalesTaxItem),
        _spec("sfdc_opp_line_items", SfdcOppLineItem),
        _spec("anrok_transactions", AnrokTransaction),
    )
}



def insert_record(conn: Connection, record: Any, *, table_name: str) -> bool:
    """
    Insert one typed record into its upload table, committed on its own.

    Returns `False` when no row was written (the row collided with an existing
    key, `ON CONFLICT DO NOTHING`). Raises `psycopg.Error` on any other DB failure,
    after rolling back just this record.

    Does not interpolate or SQL-inject provided values directly.
    - identifiers are interpolated ONLY from the whitelisted data wrapper `TABLE_SPECS`.
    """
    spec = TABLE_SPECS[table_name]      # all table specs to be fetched from this wrap only

    query = sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals}) ON CONFLICT DO NOTHING").format(
        tbl=sql.Identifier(spec.table_name),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in spec.columns),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in spec.columns),
    )
    params = tuple(getattr(record, c) for c in spec.columns)

    # one transaction per record: a failed row never takes earlier rows with it.
    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount == 1
