from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .api import DashboardApiClient
from .configuration import DashboardClientConfig
from .errors import AuthExpiredError, GenericLoadError, LoginError, NetworkError
from .session import FileTokenStore, Session
from .view import DashboardView, RingView, build_dashboard_view

logger = logging.getLogger(__name__)

# 用户可见提示
MSG_MISSING_CREDENTIALS = "请输入用户名和密码"
MSG_NETWORK_ERROR = "网络错误，请检查后端是否运行"
MSG_SESSION_EXPIRED = "登录已过期，请重新登录"
MSG_LOAD_FAILED = "数据加载失败，请重试"


@dataclass
class DashboardScreen:
    """What the page currently shows. Only the controller mutates it."""

    login_visible: bool = True
    loading_visible: bool = False
    error_visible: bool = False
    error_text: str = ""
    login_error: str = ""
    score_text: Optional[str] = None
    update_time_text: Optional[str] = None
    rings: Tuple[RingView, ...] = ()

    @property
    def main_visible(self) -> bool:
        return not self.login_visible

    def apply(self, view: DashboardView) -> None:
        self.score_text = view.score_text
        self.update_time_text = view.update_time_text
        if view.rings is not None:
            self.rings = view.rings

    def clear_data(self) -> None:
        self.score_text = None
        self.update_time_text = None
        self.rings = ()


class DashboardController:
    """
    Drive the dashboard page from the session state.

    Every network failure is handled here and shown on ``screen``; nothing is
    retried automatically. A 401/403 on the data endpoint is the only error
    that changes the session: the token is dropped and the login form comes
    back.
    """

    def __init__(
        self,
        session: Session,
        api: DashboardApiClient,
        screen: Optional[DashboardScreen] = None,
        alert: Optional[Callable[[str], None]] = None,
        timezone: str = "Asia/Shanghai",
    ):
        self.session = session
        self.api = api
        self.screen = screen or DashboardScreen()
        self._alert = alert or (lambda message: logger.warning("Alert: %s", message))
        self.timezone = timezone

    @classmethod
    def from_config(
        cls,
        config: DashboardClientConfig,
        alert: Optional[Callable[[str], None]] = None,
    ) -> "DashboardController":
        store = FileTokenStore(config.storage.token_file, key=config.storage.token_key)
        session = Session(store)
        api = DashboardApiClient(config.endpoints, session)
        return cls(session, api, alert=alert, timezone=config.display.timezone)

    def initialize(self) -> None:
        if self.session.is_authenticated:
            self.screen.login_visible = False
            self.load_data()
        else:
            self._show_login()

    def login(self, username: str, password: str) -> bool:
        if not username or not password:
            self.screen.login_error = MSG_MISSING_CREDENTIALS
            return False

        try:
            token = self.api.login(username, password)
        except LoginError as exc:
            logger.warning("Login rejected (status=%s)", exc.status_code)
            self.screen.login_error = exc.message
            return False
        except NetworkError as exc:
            logger.warning("Login request failed: %s", exc)
            self.screen.login_error = MSG_NETWORK_ERROR
            return False

        self.session.set_token(token)
        self.screen.login_error = ""
        self.screen.login_visible = False
        self.load_data()
        return True

    def load_data(self) -> bool:
        if not self.session.is_authenticated:
            self._show_login()
            return False

        self.screen.loading_visible = True
        self.screen.error_visible = False
        try:
            payload = self.api.fetch_dashboard()
            view = build_dashboard_view(payload, self.timezone)
        except AuthExpiredError:
            self.session.expire()
            self._alert(MSG_SESSION_EXPIRED)
            self._show_login()
            return False
        except (NetworkError, GenericLoadError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Failed to load TPI data: %s", exc)
            self.screen.error_text = MSG_LOAD_FAILED
            self.screen.error_visible = True
            return False
        finally:
            self.screen.loading_visible = False

        self.screen.apply(view)
        return True

    def logout(self) -> None:
        self.session.logout()
        self._show_login()

    def _show_login(self) -> None:
        self.screen.login_visible = True
        self.screen.clear_data()
