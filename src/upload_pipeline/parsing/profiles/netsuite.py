from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from upload_pipeline.parsing.normalizers import normalize_us_state
from upload_pipeline.parsing.schema import FieldKind, FieldSpec, TypedRow, make_schema

DATE = FieldKind.date
NUMERIC = FieldKind.numeric


## -- SO line item detail (`SO_line_item_detail`)

NS_SO_SCHEMA = make_schema(
    FieldSpec("Salesforce Opportunity Id (IO)"),
    FieldSpec("Salesforce Opportunity Line Id (IO)"),
    FieldSpec("Customer/Project"),
    FieldSpec("Document Number"),
    FieldSpec("Date", DATE),
    FieldSpec("Start Date", DATE),
    FieldSpec("End Date", DATE),
    FieldSpec("Item: Name"),
    FieldSpec("Item: Display Name"),
    FieldSpec("Start Date (Line)", DATE),
    FieldSpec("End Date (Line Level)", DATE),
    FieldSpec("Quantity", NUMERIC),
    FieldSpec("Contract Quantity", NUMERIC),
    FieldSpec("Unit Price", NUMERIC),
    FieldSpec("Total Amount Due Partner", NUMERIC),
    FieldSpec("Amount (Gross)", NUMERIC),
    FieldSpec("Terms: Days Till Net Due", NUMERIC),
)


@dataclass(frozen=True, slots=True)
class NsSoLineItem:
    """One sales order line, as staged in `ns_so_line_items`."""
    salesforce_opportunity_id: Optional[str]
    salesforce_opportunity_line_id: Optional[str]
    customer_project: str
    document_number: Optional[str]
    document_date: Optional[date]
    start_date: Optional[date]
    end_date: Optional[date]
    item_name: Optional[str]
    item_display_name: Optional[str]
    line_start_date: Optional[date]
    line_end_date: Optional[date]
    quantity: Optional[Decimal]
    contract_quantity: Optional[Decimal]
    unit_price: Optional[Decimal]
    total_amount_due_partner: Optional[Decimal]
    amount_gross: Optional[Decimal]
    terms_days_till_net_due: Optional[Decimal]


def build_so_line_item(r: TypedRow) -> NsSoLineItem:
    """Row-builder for `SO_line_item_detail`."""
    return NsSoLineItem(
        salesforce_opportunity_id=r.text("Salesforce Opportunity Id (IO)"),
        salesforce_opportunity_line_id=r.text("Salesforce Opportunity Line Id (IO)"),
        customer_project=r.raw("Customer/Project"),     # NOT NULL column, kept as cleaned text
        document_number=r.text("Document Number"),
        document_date=r.date("Date"),
        start_date=r.date("Start Date"),
        end_date=r.date("End Date"),
        item_name=r.text("Item: Name"),
        item_display_name=r.text("Item: Display Name"),
        line_start_date=r.date("Start Date (Line)"),
        line_end_date=r.date("End Date (Line Level)"),
        quantity=r.numeric("Quantity"),
        contract_quantity=r.numeric("Contract Quantity"),
        unit_price=r.numeric("Unit Price"),
        total_amount_due_partner=r.numeric("Total Amount Due Partner"),
        amount_gross=r.numeric("Amount (Gross)"),
        terms_days_till_net_due=r.numeric("Terms: Days Till Net Due"),
    )



## -- Invoice line item detail, sales tax (`Invoice_line_item_detail-Sales_Tax`)

NS_INVOICE_SCHEMA = make_schema(
    FieldSpec("Type"),
    FieldSpec("Date", DATE),
    FieldSpec("Date Due", DATE),
    FieldSpec("Document Number"),
    FieldSpec("Name"),
    FieldSpec("Memo", required=False),
    FieldSpec("Item"),
    FieldSpec("Qty", NUMERIC),
    FieldSpec("Contract Quantity", NUMERIC),
    FieldSpec("Unit Price", NUMERIC),
    FieldSpec("Amount", NUMERIC),
    FieldSpec("Start Date (Line)", DATE),
    FieldSpec("End Date (Line Level)", DATE),
    FieldSpec("Account"),
    FieldSpec("Salesforce Opportunity Id (IO)"),
    FieldSpec("Salesforce Pricebook Id (IO)"),
    FieldSpec("Item: Internal ID"),
    FieldSpec("Entity: Internal ID"),
    FieldSpec("Address: Shipping Address City"),
    FieldSpec("Address: Shipping Address State", normalizer=normalize_us_state),
    FieldSpec("Address: Shipping Address Country"),
)


@dataclass(frozen=True, slots=True)
class NsInvoiceSalesTaxItem:
    """One invoice line with its shipping address, as staged in `ns_invoice_sales_tax_items`."""
    transaction_type: Optional[str]
    document_date: Optional[date]
    date_due: Optional[date]
    document_number: Optional[str]
    name: Optional[str]
    memo: Optional[str]
    item: Optional[str]
    qty: Optional[Decimal]
    contract_quantity: Optional[Decimal]
    unit_price: Optional[Decimal]
    amount: Optional[Decimal]
    start_date_line: Optional[date]
    end_date_line_level: Optional[date]
    account: Optional[str]
    salesforce_opportunity_id: Optional[str]
    salesforce_pricebook_id: Optional[str]
    item_internal_id: Optional[str]
    entity_internal_id: Optional[str]
    shipping_address_city: Optional[str]
    shipping_address_state: Optional[str]
    shipping_address_country: Optional[str]


def build_invoice_sales_tax_item(r: TypedRow) -> NsInvoiceSalesTaxItem:
    """Row-builder for `Invoice_line_item_detail-Sales_Tax`."""
    return NsInvoiceSalesTaxItem(
        transaction_type=r.text("Type"),
        document_date=r.date("Date"),
        date_due=r.date("Date Due"),
        document_number=r.text("Document Number"),
        name=r.text("Name"),
        memo=r.text("Memo"),
        item=r.text("Item"),
        qty=r.numeric("Qty"),
        contract_quantity=r.numeric("Contract Quantity"),
        unit_price=r.numeric("Unit Price"),
        amount=r.numeric("Amount"),
        start_date_line=r.date("Start Date (Line)"),
        end_date_line_level=r.date("End Date (Line Level)"),
        account=r.text("Account"),
        salesforce_opportunity_id=r.text("Salesforce Opportunity Id (IO)"),
        salesforce_pricebook_id=r.text("Salesforce Pricebook Id (IO)"),
        item_internal_id=r.text("Item: Internal ID"),
        entity_internal_id=r.text("Entity: Internal ID"),
        shipping_address_city=r.text("Address: Shipping Address City"),
        shipping_address_state=r.text("Address: Shipping Address State"),
        shipping_address_country=r.text("Address: Shipping Address Country"),
    )
