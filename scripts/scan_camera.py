"""Admit pickups from the configured camera, one credential at a time, until Ctrl+C."""

from __future__ import annotations

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

from src.dismissal_system.dismissal_system.container import build_container
from src.dismissal_system.dismissal_system.core.exceptions import CaptureError, DomainError
from src.dismissal_system.dismissal_system.main import load_app_settings


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    app_settings = load_app_settings(settings)
    if app_settings.camera_source is None:
        raise SystemExit("CAMERA_SOURCE is not set")
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=app_settings)

    cancel = threading.Event()
    try:
        while not cancel.is_set():
            try:
                result = container.admission_service.scan_from_camera(cancel=cancel)
            except CaptureError as e:
                raise SystemExit(f"capture failed: {e}")
            except DomainError as e:
                print(f"refused: {e.code}: {e}")
                continue
            if result is None:
                break
            print(
                f"{result.contact_display_name}: admitted={result.admitted_count} "
                f"failed={','.join(result.failed_student_ids) or '-'}"
            )
    except KeyboardInterrupt:
        cancel.set()


if __name__ == "__main__":
    main()
