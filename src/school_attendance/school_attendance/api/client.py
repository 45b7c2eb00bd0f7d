from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import requests

from ..core.constants import DEFAULT_API_TIMEOUT_SECONDS
from ..core.enums import ErrorKind
from ..core.exceptions import RemoteError
from .credentials import CredentialProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    payload: Dict[str, Any]

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


def _message_from(payload: Dict[str, Any], fallback: str) -> str:
    msg = payload.get("msg") or payload.get("message") or payload.get("error")
    return str(msg) if msg else fallback


def _decode(response: requests.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {"data": data}


class ApiClient:
    """Thin JSON client for the school attendance service.

    Every call carries a bounded timeout and the credential supplied by the
    injected provider. Transport failures and error statuses are translated
    into ``error_cls`` (``FetchError`` or ``SubmitError``) so that callers can
    tell a retryable timeout from a definitive rejection.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        timeout: float = DEFAULT_API_TIMEOUT_SECONDS,
        http: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._timeout = float(timeout)
        self._http = http or requests.Session()

    @property
    def credentials(self) -> CredentialProvider:
        return self._credentials

    def _headers(self, error_cls: Type[RemoteError]) -> Dict[str, str]:
        token = self._credentials.get_token()
        if not token:
            raise error_cls(ErrorKind.UNAUTHORIZED, "No credential available, please log in again")
        return {
            "Authorization": f"Bearer {token}",
            "x-auth-token": token,
            "Content-Type": "application/json",
        }

    def request(
        self,
        method: str,
        path: str,
        *,
        error_cls: Type[RemoteError],
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> ApiResponse:
        headers = self._headers(error_cls)
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.Timeout:
            logger.warning("%s %s timed out after %.1fs", method, path, self._timeout)
            raise error_cls(ErrorKind.TIMEOUT, "The attendance service did not answer in time")
        except requests.ConnectionError:
            logger.warning("%s %s failed: service unreachable", method, path)
            raise error_cls(ErrorKind.NETWORK_UNREACHABLE, "No connection to the attendance service")
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise error_cls(ErrorKind.NETWORK_UNREACHABLE, str(e))

        payload = _decode(response)
        status = response.status_code
        logger.debug("%s %s -> %s", method, path, status)

        if 200 <= status < 300:
            return ApiResponse(status_code=status, payload=payload)
        if status == 404 and allow_not_found:
            return ApiResponse(status_code=status, payload=payload)
        raise self._classify(status, payload, error_cls)

    @staticmethod
    def _classify(status: int, payload: Dict[str, Any], error_cls: Type[RemoteError]) -> RemoteError:
        if status in (401, 403):
            return error_cls(ErrorKind.UNAUTHORIZED, _message_from(payload, "Session expired"), code=status)
        if status == 404 and ErrorKind.NOT_FOUND in error_cls.allowed_kinds:
            return error_cls(ErrorKind.NOT_FOUND, _message_from(payload, "Not found"), code=status)
        if status in (400, 409, 422) and ErrorKind.VALIDATION_REJECTED in error_cls.allowed_kinds:
            return error_cls(
                ErrorKind.VALIDATION_REJECTED,
                _message_from(payload, "The attendance service rejected the request"),
                code=status,
            )
        return error_cls(
            ErrorKind.SERVER_ERROR,
            _message_from(payload, f"Unexpected response from the attendance service ({status})"),
            code=status,
        )

    def get(self, path: str, **kwargs) -> ApiResponse:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> ApiResponse:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs) -> ApiResponse:
        return self.request("PUT", path, **kwargs)
