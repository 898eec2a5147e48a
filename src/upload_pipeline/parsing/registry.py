from __future__ import annotations

from functools import partial
from types import MappingProxyType
from typing import Any, Callable, Mapping

from upload_pipeline.db.record_writers import TABLE_SPECS, insert_record
from upload_pipeline.parsing.handler import CsvHandler, UploadHandler
from upload_pipeline.parsing.profiles.anrok import ANROK_TRANSACTION_SCHEMA, build_transaction
from upload_pipeline.parsing.profiles.netsuite import (
    NS_INVOICE_SCHEMA,
    NS_SO_SCHEMA,
    build_invoice_sales_tax_item,
    build_so_line_item,
)
from upload_pipeline.parsing.profiles.salesforce import SFDC_OPP_LINE_SCHEMA, build_opp_line_item
from upload_pipeline.parsing.schema import Schema


class UnknownReport(KeyError):
    """No handler is registered under the given source/report key."""



def _handler(table_name: str, schema: Schema, build: Callable[..., Any]) -> CsvHandler[Any]:
    """Bind a report to its upload table. The record type comes from the whitelisted `TABLE_SPECS`."""
    spec = TABLE_SPECS[table_name]
    return CsvHandler(
        schema=schema,
        record_type=spec.record_type,
        build=build,
        insert_fn=partial(insert_record, table_name=table_name),
        table_name=table_name,
    )


# source -> report key -> handler. Built once at import, read-only afterwards.
SOURCES: Mapping[str, Mapping[str, UploadHandler]] = MappingProxyType({
    "NS": MappingProxyType({
        "SO_line_item_detail": _handler("ns_so_line_items", NS_SO_SCHEMA, build_so_line_item),
        "Invoice_line_item_detail-Sales_Tax": _handler(
            "ns_invoice_sales_tax_items", NS_INVOICE_SCHEMA, build_invoice_sales_tax_item
        ),
    }),
    "SFDC": MappingProxyType({
        "Closed_Won_Ops-Products_Report": _handler("sfdc_opp_line_items", SFDC_OPP_LINE_SCHEMA, build_opp_line_item),
    }),
    "Anrok": MappingProxyType({
        "Transactions": _handler("anrok_transactions", ANROK_TRANSACTION_SCHEMA, build_transaction),
    }),
})



def get_handler(source: str, report: str) -> UploadHandler:
    """
    A registry that resolves a source's report key to its handler.
    Raises `UnknownReport` for unknown sources or report keys.
    """
    reports = SOURCES.get(source)
    if reports is None:
        raise UnknownReport(f"Unknown source: {source!r} (known: {sorted(SOURCES)})")
    handler = reports.get(report)
    if handler is None:
        raise UnknownReport(f"Unknown report for {source}: {report!r} (known: {sorted(reports)})")
    return handler
