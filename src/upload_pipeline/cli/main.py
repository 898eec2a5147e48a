from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from upload_pipeline.cli.loader import UploadCancelled, run_upload
from upload_pipeline.config import load_config
from upload_pipeline.db.connect import connect
from upload_pipeline.ingest.readers import UploadError
from upload_pipeline.parsing.registry import SOURCES, UnknownReport, get_handler


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for uploading source-system CSV exports into Postgres.

    The `cmd` options are:
    ## load:
    Validates and inserts every row of one export, row by row.
    - `--source` as the exporting system (`NS`, `SFDC`, `Anrok`),
    - `--report` as the report key registered for that source,
    - `--input` as the path to the CSV file.

    A results summary will print in the terminal upon completion of a load.
    Rows that fail land in `<input stem>.failed.csv` (or under `--failure-log-dir`).

    ### Example load usage:
    - `uploads load --source NS --report SO_line_item_detail --input so_lines.csv`
    - `uploads load --source Anrok --report Transactions --input anrok.csv --timeout 300`

    ## reports:
    Lists every source and report key with the header it expects.

    Exit codes: `0` on a completed load (even with failed rows), `1` when the file
    itself is rejected or the run is cancelled, `2` for anything unknown.
    """
    p = argparse.ArgumentParser(prog="uploads")
    p.add_argument(
        "--log-level",
        default=os.getenv("UPLOAD_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # load cmd
    load = sub.add_parser("load", help="Upload a CSV export (failed rows go to a failure log).")
    load.add_argument("--source", required=True, choices=sorted(SOURCES))
    load.add_argument("--report", required=True, help="Report key, see `uploads reports`.")
    load.add_argument("--input", required=True, help="Path to the CSV file.")
    load.add_argument("--failure-log-dir", default=None, help="Directory for the failure log (default: beside the input).")
    load.add_argument("--timeout", type=float, default=None, help="Abandon the remaining rows after this many seconds.")

    # reports cmd
    sub.add_parser("reports", help="List sources, report keys and their expected headers.")

    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.cmd == "load":
        config = load_config()
        if args.failure_log_dir:
            config = replace(config, failure_log_dir=Path(args.failure_log_dir))

        # resolve the report before opening a connection
        try:
            get_handler(args.source, args.report)
        except UnknownReport as e:
            print(e.args[0], file=sys.stderr)
            return 2

        try:
            with connect(statement_timeout_ms=config.statement_timeout_ms) as conn:
                summary = run_upload(
                    conn,
                    source=args.source,
                    report=args.report,
                    input_path=Path(args.input),
                    config=config,
                    timeout=args.timeout,
                )
        except UnknownReport as e:
            print(e.args[0], file=sys.stderr)
            return 2
        except UploadCancelled as e:
            print(e.summary.render_one_line())
            print(str(e), file=sys.stderr)
            return 1
        except UploadError as e:
            print(f"upload failed: {e}", file=sys.stderr)
            return 1

        print(summary.render_one_line())
        return 0

    if args.cmd == "reports":
        for source, reports in SOURCES.items():
            for key, handler in reports.items():
                print(f"{source}/{key} -> {handler.table_name}")
                print("    " + ", ".join(handler.header()))
        return 0

    return 2
