from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import requests

from .api.client import ApiClient
from .api.credentials import TokenStore
from .attendance.navigation import NavigationGuard
from .attendance.session import AttendanceSession
from .attendance.submission import SubmissionCoordinator
from .core.constants import DEFAULT_API_TIMEOUT_SECONDS, DEFAULT_REMARKS_MAX_LENGTH
from .records.http_record_repository import HttpAttendanceRecordRepository
from .records.repository import AttendanceRecordRepository
from .records.resolver import AttendanceRecordResolver
from .roster.http_roster_repository import HttpRosterRepository
from .roster.loader import RosterLoader
from .roster.repository import RosterRepository


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    timeout: float = DEFAULT_API_TIMEOUT_SECONDS
    remarks_max_length: int = DEFAULT_REMARKS_MAX_LENGTH


@dataclass(frozen=True)
class Container:
    settings: ApiSettings
    http: requests.Session
    guard: NavigationGuard

    roster_repo_factory: Callable[[ApiClient], RosterRepository] = HttpRosterRepository
    records_repo_factory: Callable[[ApiClient], AttendanceRecordRepository] = HttpAttendanceRecordRepository

    def open_session(self, *, class_id: str, on_date: date, token: Optional[str]) -> AttendanceSession:
        """Wire a fresh screen session with its own credential store."""
        credentials = TokenStore(token)
        client = ApiClient(self.settings.base_url, credentials, timeout=self.settings.timeout, http=self.http)
        records_repo = self.records_repo_factory(client)

        return AttendanceSession(
            class_id=class_id,
            on_date=on_date,
            roster_loader=RosterLoader(self.roster_repo_factory(client)),
            record_resolver=AttendanceRecordResolver(records_repo),
            coordinator=SubmissionCoordinator(records_repo),
            guard=self.guard,
            credentials=credentials,
            remarks_max_length=self.settings.remarks_max_length,
        )


def build_container(*, api_config: dict) -> Container:
    settings = ApiSettings(
        base_url=str(api_config["base_url"]),
        timeout=float(api_config.get("timeout", DEFAULT_API_TIMEOUT_SECONDS)),
        remarks_max_length=int(api_config.get("remarks_max_length", DEFAULT_REMARKS_MAX_LENGTH)),
    )
    return Container(settings=settings, http=requests.Session(), guard=NavigationGuard())
