#!/usr/bin/env python3
"""
Script to build a fleet compliance report for one tenant.

Usage:
    python scripts/run_compliance_report.py --snapshot snapshot.json --output report.json
    python scripts/run_compliance_report.py --tenant-id <uuid> --as-of 2025-11-01
    python scripts/run_compliance_report.py --tenant-id <uuid> --evaluator-id <uuid>
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stafftrak.compliance import load_calendar
from stafftrak.config import settings
from stafftrak.database import PostgresEntityStore, close_database_pool
from stafftrak.models import FleetReport, load_snapshot_file
from stafftrak.reporting import build_fleet_report
from stafftrak.services import EvaluationCycleService


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('compliance_report.log')
        ]
    )


def print_summary(report: FleetReport):
    """Print a human-readable summary of the report."""
    print(f"\n📊 Compliance report {report.school_year} as of {report.as_of}")
    print(f"   Staff: {report.staff_count}")
    print(f"   On track: {report.on_track_count}")
    print(f"   Not on track: {report.not_on_track_count}")

    for entry in report.not_on_track:
        overdue = ", ".join(m.name for m in entry.overdue)
        print(f"   ⚠️  {entry.staff_name}: {overdue}")

    print("\n   Milestones:")
    for m in report.milestone_completion:
        print(f"   - {m.name} (due {m.due_date}): {m.complete}/{m.applicable} complete, {m.overdue} overdue")


async def report_from_database(calendar, tenant_id: UUID, as_of: date, evaluator_id=None) -> FleetReport:
    service = EvaluationCycleService(PostgresEntityStore(), calendar=calendar)
    try:
        return await service.fleet_report(tenant_id, as_of, evaluator_id=evaluator_id)
    finally:
        await close_database_pool()


def main():
    parser = argparse.ArgumentParser(description="Build a fleet compliance report")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--snapshot", type=Path, help="JSON snapshot file")
    source.add_argument("--tenant-id", type=UUID, help="Tenant to load from the database")
    parser.add_argument("--evaluator-id", type=UUID, help="Limit to one evaluator's caseload")
    parser.add_argument("--as-of", type=date.fromisoformat, default=date.today(), help="Evaluation date (YYYY-MM-DD)")
    parser.add_argument("--school-year", default=settings.compliance.school_year, help="School year, e.g. 2025-2026")
    parser.add_argument("--output", type=Path, help="Write the report as JSON")
    parser.add_argument("--log-level", default=settings.app.log_level, help="Logging level")

    args = parser.parse_args()
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    calendar = load_calendar(args.school_year, settings.compliance.calendar_dir)

    try:
        if args.snapshot:
            report = build_fleet_report(load_snapshot_file(args.snapshot), calendar, args.as_of)
        else:
            report = asyncio.run(report_from_database(calendar, args.tenant_id, args.as_of, args.evaluator_id))
    except Exception as e:
        logger.error(f"Report generation failed: {e}")
        print(f"❌ Report generation failed: {e}")
        sys.exit(1)

    print_summary(report)

    if args.output:
        args.output.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        print(f"\n✅ Report saved to {args.output}")


if __name__ == "__main__":
    main()
