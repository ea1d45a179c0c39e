"""Print live status counts for one grade (or the whole school) until Ctrl+C.

    python scripts/watch_counts.py --grade 3 --interval 10
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
import threading
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.dismissal_system.dismissal_system.aggregation.model import StatusCounts
from src.dismissal_system.dismissal_system.container import build_container
from src.dismissal_system.dismissal_system.main import load_app_settings


def _print_counts(counts: StatusCounts) -> None:
    if counts.queue_id is None:
        print("no open queue")
        return
    scope = f"grade {counts.grade}" if counts.grade else "school"
    body = "  ".join(f"{s.value}={n}" for s, n in counts.counts.items() if n)
    print(f"[{counts.queue_id}] {scope}: total={counts.total}  {body}")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    app_settings = load_app_settings(settings)

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--grade", help="grade to watch; omit for school-wide counts")
    parser.add_argument("--interval", type=float, default=app_settings.counts_poll_seconds)
    args = parser.parse_args()

    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=app_settings)

    poller = container.aggregation_service.poller(_print_counts, interval=args.interval, grade=args.grade)
    done = threading.Event()
    with poller:
        try:
            done.wait()
        except KeyboardInterrupt:
            print(f"stopped ({poller.superseded} slow refreshes superseded)")


if __name__ == "__main__":
    main()
