from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

import requests

from .configuration import EndpointConfig
from .errors import AuthExpiredError, GenericLoadError, LoginError, NetworkError
from .session import Session

logger = logging.getLogger(__name__)

LOGIN_FAILED_FALLBACK = "登录失败"
AUTH_EXPIRED_STATUSES = {401, 403}


def _json_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _bearer_headers(session: Session) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if session.token:
        headers["Authorization"] = f"Bearer {session.token}"
    return headers


def _check_protected_response(response: requests.Response) -> Any:
    if response.status_code in AUTH_EXPIRED_STATUSES:
        raise AuthExpiredError(response.status_code)
    body = _json_body(response)
    if not response.ok:
        message = body.get("error") if isinstance(body, dict) else None
        raise GenericLoadError(message or f"HTTP {response.status_code}", status_code=response.status_code)
    if body is None:
        raise GenericLoadError("Response body is not valid JSON", status_code=response.status_code)
    return body


class DashboardApiClient:
    """HTTP access to the login and data endpoints used by the dashboard page."""

    def __init__(self, endpoints: EndpointConfig, session: Session):
        self.endpoints = endpoints
        self.session = session

    def login(self, username: str, password: str) -> str:
        """POST credentials and return the issued token; the session is not touched here."""
        url = self.endpoints.url(self.endpoints.login_path)
        try:
            response = requests.post(
                url,
                json={"username": username, "password": password},
                timeout=self.endpoints.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc

        body = _json_body(response)
        body = body if isinstance(body, dict) else {}
        if not response.ok:
            raise LoginError(body.get("error") or LOGIN_FAILED_FALLBACK, status_code=response.status_code)

        token = body.get("token")
        if not isinstance(token, str) or not token:
            raise LoginError(LOGIN_FAILED_FALLBACK, status_code=response.status_code)
        return token

    def fetch_dashboard(self) -> Dict[str, Any]:
        url = self.endpoints.url(self.endpoints.data_path)
        try:
            response = requests.get(
                url,
                headers=_bearer_headers(self.session),
                timeout=self.endpoints.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc

        body = _check_protected_response(response)
        if not isinstance(body, dict):
            raise GenericLoadError("Unexpected dashboard payload", status_code=response.status_code)
        return body


class SyncServiceClient:
    """Thin client for the TPI sync service (``/api/tpi`` and friends)."""

    def __init__(self, base_url: str, session: Session, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    def push_snapshot(self, record_date: date, data: Any) -> str:
        payload = {"date": record_date.isoformat(), "data": data}
        body = self._request("POST", "/api/tpi", json=payload)
        return str(body.get("message", "")) if isinstance(body, dict) else ""

    def fetch_history(self) -> Dict[str, Any]:
        body = self._request("GET", "/api/tpi/history")
        if not isinstance(body, dict):
            raise GenericLoadError("Unexpected history payload")
        return body

    def server_time(self) -> Dict[str, Any]:
        return self._request("GET", "/api/time")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                headers=_bearer_headers(self.session),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc
        return _check_protected_response(response)
