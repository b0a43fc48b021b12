"""Complete approved resignations whose last working day has passed.

Meant to be run by the scheduler once a day, e.g. from cron:

    0 0 * * * cd /srv/offboarding && python scripts/run_reconciliation.py

Exit status is 1 when any record failed (the others are still completed).
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.offboarding_system.offboarding_system.common.datetime_utils import parse_iso_date
from src.offboarding_system.offboarding_system.common.logging_utils import configure_logging
from src.offboarding_system.offboarding_system.container import build_container


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--date", help="Treat this day (YYYY-MM-DD) as today")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        default_notice_period_days=int(getattr(settings, "DEFAULT_NOTICE_PERIOD_DAYS", 30)),
    )
    today = parse_iso_date(args.date) if args.date else None
    report = container.reconciliation.run(today)
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
