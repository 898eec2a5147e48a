from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from upload_pipeline.parsing.normalizers import normalize_us_state
from upload_pipeline.parsing.schema import FieldKind, FieldSpec, TypedRow, make_schema


# Anrok tax transaction export. VAT id columns and exempt reasons are blank
# for most domestic transactions.
ANROK_TRANSACTION_SCHEMA = make_schema(
    FieldSpec("Transaction ID"),
    FieldSpec("Customer ID"),
    FieldSpec("Customer name"),
    FieldSpec("Overall VAT ID validation status"),
    FieldSpec("Valid VAT IDs", required=False),
    FieldSpec("Other VAT IDs", required=False),
    FieldSpec("Invoice date", FieldKind.date),
    FieldSpec("Tax date", FieldKind.date),
    FieldSpec("Transaction currency"),
    FieldSpec("Sales amount", FieldKind.numeric),
    FieldSpec("Exempt reasons", required=False),
    FieldSpec("Tax amount", FieldKind.numeric),
    FieldSpec("Invoice amount", FieldKind.numeric),
    FieldSpec("Void", FieldKind.boolean),
    FieldSpec("Customer address line 1"),
    FieldSpec("Customer address city"),
    FieldSpec("Customer address region", normalizer=normalize_us_state),
    FieldSpec("Customer address postal code"),
    FieldSpec("Customer address country"),
    FieldSpec("Customer country code"),
    FieldSpec("Jurisdictions"),
    FieldSpec("Jurisdictions IDs"),
    FieldSpec("Return IDs"),
)


@dataclass(frozen=True, slots=True)
class AnrokTransaction:
    """One taxed transaction, as staged in `anrok_transactions`."""
    transaction_id: Optional[str]
    customer_id: Optional[str]
    customer_name: Optional[str]
    overall_vat_id_validation_status: Optional[str]
    valid_vat_ids: Optional[str]
    other_vat_ids: Optional[str]
    invoice_date: Optional[date]
    tax_date: Optional[date]
    transaction_currency: Optional[str]
    sales_amount: Optional[Decimal]
    exempt_reasons: Optional[str]
    tax_amount: Optional[Decimal]
    invoice_amount: Optional[Decimal]
    void: Optional[bool]
    customer_address_line_1: Optional[str]
    customer_address_city: Optional[str]
    customer_address_region: Optional[str]
    customer_address_postal_code: Optional[str]
    customer_address_country: Optional[str]
    customer_country_code: Optional[str]
    jurisdictions: Optional[str]
    jurisdiction_ids: Optional[str]
    return_ids: Optional[str]


def build_transaction(r: TypedRow) -> AnrokTransaction:
    """Row-builder for Anrok transactions."""
    return AnrokTransaction(
        transaction_id=r.text("Transaction ID"),
        customer_id=r.text("Customer ID"),
        customer_name=r.text("Customer name"),
        overall_vat_id_validation_status=r.text("Overall VAT ID validation status"),
        valid_vat_ids=r.text("Valid VAT IDs"),
        other_vat_ids=r.text("Other VAT IDs"),
        invoice_date=r.date("Invoice date"),
        tax_date=r.date("Tax date"),
        transaction_currency=r.text("Transaction currency"),
        sales_amount=r.numeric("Sales amount"),
        exempt_reasons=r.text("Exempt reasons"),
        tax_amount=r.numeric("Tax amount"),
        invoice_amount=r.numeric("Invoice amount"),
        void=r.boolean("Void"),
        customer_address_line_1=r.text("Customer address line 1"),
        customer_address_city=r.text("Customer address city"),
        customer_address_region=r.text("Customer address region"),
        customer_address_postal_code=r.text("Customer address postal code"),
        customer_address_country=r.text("Customer address country"),
        customer_country_code=r.text("Customer country code"),
        jurisdictions=r.text("Jurisdictions"),
        jurisdiction_ids=r.text("Jurisdictions IDs"),
        return_ids=r.text("Return IDs"),
    )
