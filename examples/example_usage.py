"""Example: drive an attendance sheet through the service layer (no Flask).

Controllers are a thin layer; the sheet workflow lives in AttendanceSession.
"""

import importlib
import os
import sys

from config import get_settings_module

from src.school_attendance.school_attendance.common.datetime_utils import parse_iso_date
from src.school_attendance.school_attendance.container import build_container
from src.school_attendance.school_attendance.core.enums import AttendanceStatus, ExitReason, ExitResolution


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(api_config={"base_url": settings.API_BASE_URL, "timeout": settings.API_TIMEOUT_SECONDS})

    class_id, day = sys.argv[1], parse_iso_date(sys.argv[2])
    sheet = container.open_session(class_id=class_id, on_date=day, token=os.getenv("TEACHER_TOKEN"))
    ws = sheet.load()
    print(f"{'Update' if ws.existing_record_id else 'Take'} attendance: {len(ws.entries)} students")

    sheet.bulk_set_status(AttendanceStatus.PRESENT, confirmed=True)
    outcome = sheet.submit()
    print("saved record", outcome.record.record_id, sheet.summary())

    sheet.request_exit(ExitReason.BACK, lambda ws, reason: ExitResolution.STAY)


if __name__ == "__main__":
    main()
