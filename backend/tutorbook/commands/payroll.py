#!/usr/bin/env python
# backend/tutorbook/commands/payroll.py
"""
Weekly payroll report for one teacher.

Usage:
    python -m tutorbook.commands.payroll TEACHER_ID 2030-06-03
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from ..core.config import settings
from ..core.exceptions import DomainException
from ..core.logging import setup_logging
from ..database import get_db_session
from ..services.payroll_service import PayrollService

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Print the report as JSON; exit 1 on a rejected request."""
    setup_logging()
    parser = argparse.ArgumentParser(description="tutorbook weekly teacher payroll")
    parser.add_argument("teacher_id", help="Teacher user id")
    parser.add_argument("week_start", help="Monday of the payroll week, YYYY-MM-DD")
    parser.add_argument(
        "--timezone",
        default=settings.payroll_timezone,
        help="Payroll zone (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    try:
        with get_db_session() as db:
            report = PayrollService(db, payroll_timezone=args.timezone).teacher_weekly_payroll(
                args.teacher_id, args.week_start
            )
    except DomainException as exc:
        logger.error(f"Payroll report rejected: {exc.message}")
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1

    print(report.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
