"""Association Reconciliation — plan the move from name joins to id joins.

Reads a JSON snapshot exported from the console:

    {"projects": [...], "site_visits": [...], "caretakers": [...]}

and writes a report resolving every site visit association name and every
caretaker association label to a canonical Association id (matched,
ambiguous or unmatched). Nothing is modified; apply the report with the
console's own tooling after reviewing the ambiguous rows.

Usage:
    visitrank-reconcile --input snapshot.json [--output report.json]
    visitrank-reconcile --input snapshot.json --rank --as-of 2026-10-19
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from .logging_config import setup_logging
from .schemas.rankings import ReconcileRequest
from .services.association_reconciliation import build_reconciliation_report
from .services.ranking_service import compute_project_rankings, summarize


def load_snapshot(path: Path) -> ReconcileRequest:
    with path.open("r", encoding="utf-8") as f:
        return ReconcileRequest.model_validate(json.load(f))


def build_output(snapshot: ReconcileRequest, rank: bool, as_of: date) -> dict:
    report = build_reconciliation_report(snapshot.projects, snapshot.site_visits, snapshot.caretakers)
    out = report.model_dump(mode="json")
    if rank:
        rankings = compute_project_rankings(snapshot.site_visits, snapshot.projects, as_of=as_of, use_cache=False)
        out["rankings"] = [r.model_dump(mode="json") for r in rankings]
        out["ranking_summary"] = summarize(rankings).model_dump(mode="json")
    return out


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve association names to canonical ids")
    parser.add_argument("--input", required=True, type=Path, help="Snapshot JSON file")
    parser.add_argument("--output", type=Path, help="Report file (default: stdout)")
    parser.add_argument("--rank", action="store_true", help="Also include the project ranking")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="Reference day, YYYY-MM-DD")
    args = parser.parse_args(argv)

    setup_logging(sink=sys.stderr)

    try:
        snapshot = load_snapshot(args.input)
    except FileNotFoundError:
        logger.error(f"Snapshot not found: {args.input}")
        return 1
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Snapshot is not valid: {e}")
        return 1

    out = build_output(snapshot, args.rank, args.as_of or date.today())
    text = json.dumps(out, indent=2)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        logger.info(f"Report written to {args.output}")
    else:
        sys.stdout.write(text + "\n")

    counts = out["counts"]
    logger.info(
        f"Site visits: {counts['site_visits']} | Caretakers: {counts['caretakers']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
