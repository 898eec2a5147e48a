from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from upload_pipeline.parsing.schema import FieldKind, FieldSpec, TypedRow, make_schema


# Closed won opportunities with their products (`Closed_Won_Ops-Products_Report`).
# Payment terms and the deprecated term column are often blank on older opportunities.
SFDC_OPP_LINE_SCHEMA = make_schema(
    FieldSpec("Opportunity ID Casesafe"),
    FieldSpec("Opportunity Product Casesafe ID"),
    FieldSpec("Opportunity Name"),
    FieldSpec("Account Name"),
    FieldSpec("Close Date", FieldKind.date),
    FieldSpec("Booked Date", FieldKind.date),
    FieldSpec("Fiscal Period"),
    FieldSpec("Payment Schedule", required=False),
    FieldSpec("Payment Due", required=False),
    FieldSpec("Contract Start Date", FieldKind.date),
    FieldSpec("Contract End Date", FieldKind.date),
    FieldSpec("Term in Months_deprecated", FieldKind.numeric, required=False),
    FieldSpec("Product Name"),
    FieldSpec("Deployment Type", required=False),
    FieldSpec("Amount", FieldKind.numeric),
    FieldSpec("Quantity", FieldKind.numeric),
    FieldSpec("List Price", FieldKind.numeric),
    FieldSpec("Sales Price", FieldKind.numeric),
    FieldSpec("Total Price", FieldKind.numeric),
    FieldSpec("Start Date", FieldKind.date),
    FieldSpec("End Date", FieldKind.date),
    FieldSpec("Term in Months", FieldKind.numeric),
    FieldSpec("Product Code"),
    FieldSpec("Total Amount Due - Customer", FieldKind.numeric),
    FieldSpec("Total Amount Due - Partner", FieldKind.numeric),
    FieldSpec("Active Product", FieldKind.boolean),
)


@dataclass(frozen=True, slots=True)
class SfdcOppLineItem:
    """One opportunity product line, as staged in `sfdc_opp_line_items`."""
    opportunity_id: Optional[str]
    opportunity_product_casesafe_id: Optional[str]
    opportunity_name: Optional[str]
    account_name: Optional[str]
    close_date: Optional[date]
    booked_date: Optional[date]
    fiscal_period: Optional[str]
    payment_schedule: Optional[str]
    payment_due: Optional[str]
    contract_start_date: Optional[date]
    contract_end_date: Optional[date]
    term_in_months_deprecated: Optional[Decimal]
    product_name: Optional[str]
    deployment_type: Optional[str]
    amount: Optional[Decimal]
    quantity: Optional[Decimal]
    list_price: Optional[Decimal]
    sales_price: Optional[Decimal]
    total_price: Optional[Decimal]
    start_date: Optional[date]
    end_date: Optional[date]
    term_in_months: Optional[Decimal]
    product_code: Optional[str]
    total_amount_due_customer: Optional[Decimal]
    total_amount_due_partner: Optional[Decimal]
    active_product: Optional[bool]


def build_opp_line_item(r: TypedRow) -> SfdcOppLineItem:
    """Row-builder for `Closed_Won_Ops-Products_Report`."""
    return SfdcOppLineItem(
        opportunity_id=r.text("Opportunity ID Casesafe"),
        opportunity_product_casesafe_id=r.text("Opportunity Product Casesafe ID"),
        opportunity_name=r.text("Opportunity Name"),
        account_name=r.text("Account Name"),
        close_date=r.date("Close Date"),
        booked_date=r.date("Booked Date"),
        fiscal_period=r.text("Fiscal Period"),
        payment_schedule=r.text("Payment Schedule"),
        payment_due=r.text("Payment Due"),
        contract_start_date=r.date("Contract Start Date"),
        contract_end_date=r.date("Contract End Date"),
        term_in_months_deprecated=r.numeric("Term in Months_deprecated"),
        product_name=r.text("Product Name"),
        deployment_type=r.text("Deployment Type"),
        amount=r.numeric("Amount"),
        quantity=r.numeric("Quantity"),
        list_price=r.numeric("List Price"),
        sales_price=r.numeric("Sales Price"),
        total_price=r.numeric("Total Price"),
        start_date=r.date("Start Date"),
        end_date=r.date("End Date"),
        term_in_months=r.numeric("Term in Months"),
        product_code=r.text("Product Code"),
        total_amount_due_customer=r.numeric("Total Amount Due - Customer"),
        total_amount_due_partner=r.numeric("Total Amount Due - Partner"),
        active_product=r.boolean("Active Product"),
    )
