#!/usr/bin/env python3
"""
tradesbook CLI - inspect a snapshot file without the app.

Usage:
    python -m tradesbook summarize snapshot.json [--client ID] [--today YYYY-MM-DD]
    python -m tradesbook classify snapshot.json --job ID

A snapshot file is a JSON object with "clients", "jobs", "invoices" and
"payments" arrays of raw records, as exported by the data-access layer.
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from . import config
from .classify import classify_with_rule
from .config import load_thresholds
from .engine import compute_client_view
from .errors import ConfigError
from .models import JobStatus
from .normalize import normalize_snapshot
from .observability import ComputationContext, configure_logging, get_logger
from .status_engine import status_label

logger = get_logger(__name__)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not rows:
        print("  (none)")
        return
    if not widths:
        widths = [
            max(len(str(row[i])) for row in [headers] + rows)
            for i in range(len(headers))
        ]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def load_snapshot_file(path: str) -> dict:
    """Read a snapshot JSON file. Missing collections default to empty."""
    with open(Path(path)) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object at top level")
    return {key: data.get(key) or [] for key in ("clients", "jobs", "invoices", "payments")}


def _parse_today(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def cmd_summarize(args) -> int:
    """Show a client's financial summary and indicators."""
    raw = load_snapshot_file(args.snapshot)
    thresholds = load_thresholds(args.thresholds)
    snapshot = normalize_snapshot(**raw)

    client = None
    if args.client:
        snapshot = snapshot.for_client(args.client)
        client = snapshot.clients[0] if snapshot.clients else None

    view = compute_client_view(
        client,
        snapshot.jobs,
        snapshot.invoices,
        snapshot.payments,
        now=_parse_today(args.today),
        thresholds=thresholds,
        timeout_seconds=args.timeout,
    )
    # records were normalized here, so exclusions are counted here
    view["summary"]["excluded_records"] += snapshot.stats.excluded_total

    if args.json:
        print(json.dumps(view, indent=2))
        return 0

    summary = view["summary"]
    name = view["client"]["name"] if view["client"] else "All records"
    print_header(f"Financial summary: {name}")
    print(f"  Total value:        {summary['total_value']:,.2f}")
    print(f"  Total paid:         {summary['total_paid']:,.2f}")
    print(f"  Total outstanding:  {summary['total_outstanding']:,.2f}")
    print(f"  Jobs:               {summary['job_count']} "
          f"({summary['active_jobs_with_balance']} with balance)")
    print(f"  Last payment:       {summary['last_payment_date'] or 'No payments yet'}")
    if summary["degraded"]:
        print("  ! Simplified totals: snapshot too large for a per-job breakdown")
    if summary["timed_out"]:
        print("  ! Timed out: figures below are placeholders")
    if summary["excluded_records"]:
        print(f"  ! {summary['excluded_records']} records excluded during normalization")

    print_header("Jobs")
    print_table(
        ["Job", "Status", "Outstanding", "Value"],
        [
            [
                job["job_title"],
                status_label(JobStatus(job["status"]), job["days_until_due"]),
                f"{job['outstanding_amount']:,.2f}",
                f"{job['total_value']:,.2f}",
            ]
            for job in summary["jobs"]
        ],
    )

    print_header("Needs attention")
    print_table(
        ["Severity", "Indicator"],
        [[i["severity"], i["text"]] for i in view["indicators"]],
    )
    return 0


def cmd_classify(args) -> int:
    """Show each invoice kind for one job and the rule that matched."""
    raw = load_snapshot_file(args.snapshot)
    thresholds = load_thresholds(args.thresholds)
    snapshot = normalize_snapshot(**raw)

    job = next((j for j in snapshot.jobs if j.job_id == args.job), None)
    if job is None:
        print(f"Job not found: {args.job}", file=sys.stderr)
        return 1

    invoices = snapshot.invoices_for_job(job.job_id)
    rows = []
    for inv in invoices:
        kind, rule = classify_with_rule(
            inv, invoices, job.contract_value, thresholds.full_invoice_ratio
        )
        rows.append([inv.number or inv.invoice_id, f"{inv.total:,.2f}", kind.value, rule])

    print_header(f"{job.title} (value {job.contract_value:,.2f})")
    print_table(["Invoice", "Total", "Kind", "Rule"], rows)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradesbook",
        description="Payment reconciliation and financial status for a snapshot file",
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    parser.add_argument(
        "--thresholds", default=None, help="Thresholds YAML (default config/thresholds.yaml)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("summarize", help="Client financial summary and indicators")
    p.add_argument("snapshot", help="Snapshot JSON file")
    p.add_argument("--client", help="Client id to narrow to")
    p.add_argument("--today", help="Evaluate due dates as of this date (YYYY-MM-DD)")
    p.add_argument("--timeout", type=float, default=None, help="Aggregation timeout (seconds)")
    p.add_argument("--json", action="store_true", help="Print JSON instead of tables")
    p.set_defaults(func=cmd_summarize)

    p = sub.add_parser("classify", help="Invoice kinds for one job")
    p.add_argument("snapshot", help="Snapshot JSON file")
    p.add_argument("--job", required=True, help="Job id")
    p.set_defaults(func=cmd_classify)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    with ComputationContext():
        try:
            return args.func(args)
        except (OSError, ValueError, ConfigError) as e:
            logger.error(f"{args.command} failed: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 2


if __name__ == "__main__":
    sys.exit(main())
