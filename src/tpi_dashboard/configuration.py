# config parameters for the TPI dashboard client

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel

DEFAULT_API_BASE_URL = "https://tpi-backend-newest.onrender.com"
DEFAULT_TOKEN_FILE = os.path.expanduser("~/.tpi_dashboard/auth.json")


# ========== 1. 后端地址 ==========

class EndpointConfig(BaseModel):
    api_base_url: str = DEFAULT_API_BASE_URL
    """登录与数据接口所在的后端地址"""

    login_path: str = "/api/login"
    """登录接口路径"""

    data_path: str = "/api/data"
    """TPI 数据接口路径（需要 Bearer token）"""

    request_timeout_seconds: Optional[float] = None
    """请求超时时间；为空时使用 requests 默认行为（不超时）"""

    def url(self, path: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/{path.lstrip('/')}"


# ========== 2. 登录状态持久化 ==========

class TokenStorageConfig(BaseModel):
    token_file: str = DEFAULT_TOKEN_FILE
    """保存 token 的本地文件"""

    token_key: str = "tpi_token"
    """token 在文件中的键名"""


# ========== 3. 展示相关 ==========

class DisplayConfig(BaseModel):
    timezone: str = "Asia/Shanghai"
    """更新时间的显示时区，无法识别时回退到 UTC"""


# ========== 4. 汇总配置 ==========

class DashboardClientConfig(BaseModel):
    """Configuration for the TPI dashboard client."""

    endpoints: EndpointConfig = EndpointConfig()
    storage: TokenStorageConfig = TokenStorageConfig()
    display: DisplayConfig = DisplayConfig()

    @classmethod
    def from_mapping(cls, configurable: Optional[Dict[str, Any]] = None) -> "DashboardClientConfig":
        """Create a config from a nested dict, letting environment variables win."""
        configurable = configurable or {}
        endpoints = configurable.get("endpoints", {})
        storage = configurable.get("storage", {})
        display = configurable.get("display", {})

        return cls(
            endpoints=EndpointConfig(
                api_base_url=os.getenv("TPI_API_BASE_URL", endpoints.get("api_base_url", DEFAULT_API_BASE_URL)),
                login_path=endpoints.get("login_path", "/api/login"),
                data_path=endpoints.get("data_path", "/api/data"),
                request_timeout_seconds=_env_float(
                    "TPI_REQUEST_TIMEOUT", endpoints.get("request_timeout_seconds")
                ),
            ),
            storage=TokenStorageConfig(
                token_file=os.path.expanduser(
                    os.getenv("TPI_TOKEN_FILE", storage.get("token_file", DEFAULT_TOKEN_FILE))
                ),
                token_key=storage.get("token_key", "tpi_token"),
            ),
            display=DisplayConfig(
                timezone=os.getenv("TPI_DISPLAY_TIMEZONE", display.get("timezone", "Asia/Shanghai")),
            ),
        )


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_client_config(configurable: Optional[Dict[str, Any]] = None) -> DashboardClientConfig:
    return DashboardClientConfig.from_mapping(configurable)
