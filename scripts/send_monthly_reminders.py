#!/usr/bin/env python3
"""Send the monthly dues reminders for one organization (or every organization)."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from treasury.config import SessionLocal, settings  # noqa: E402
from treasury.core.logging import configure_logging  # noqa: E402
from treasury.models.models import Organization  # noqa: E402
from treasury.services.reminders import send_monthly_reminders  # noqa: E402

logger = logging.getLogger("treasury.scripts.send_monthly_reminders")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--organization-id", type=int, help="Only remind members of this organization.")
    parser.add_argument(
        "--month",
        type=int,
        choices=range(1, 13),
        metavar="MONTH",
        help="Billing month (1-12); defaults to the current month.",
    )
    parser.add_argument("--year", type=int, help="Billing year; defaults to the current year.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(settings.log_level, settings.log_format)

    with SessionLocal() as session:
        if args.organization_id is not None:
            organization_ids = [args.organization_id]
        else:
            organization_ids = [row[0] for row in session.query(Organization.id).order_by(Organization.id).all()]

        failed_total = 0
        for organization_id in organization_ids:
            try:
                result = send_monthly_reminders(session, organization_id, month=args.month, year=args.year)
            except Exception:
                session.rollback()
                failed_total += 1
                logger.exception("Monthly reminders for organization %s failed", organization_id)
                print(f"Organization {organization_id}: reminder run failed")
                continue
            failed_total += result.failed
            print(
                f"Organization {organization_id} {result.month:02d}/{result.year}: "
                f"sent={result.sent} failed={result.failed}"
            )

    if not organization_ids:
        print("No organizations to remind.")
    return 1 if failed_total else 0


if __name__ == "__main__":
    sys.exit(main())
