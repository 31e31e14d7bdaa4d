"""
Sync service configuration.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AccessPolicy = Literal["public", "bearer"]


class AccessConfig(BaseModel):
    read_policy: AccessPolicy = "public"
    write_policy: AccessPolicy = "public"
    api_tokens: List[str] = Field(default_factory=list)

    def policy_for(self, scope: Literal["read", "write"]) -> AccessPolicy:
        return self.read_policy if scope == "read" else self.write_policy


class ServiceConfig(BaseModel):
    environment: str = "development"
    enable_cors: bool = True
    access: AccessConfig = AccessConfig()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_policy(name: str, default: AccessPolicy) -> AccessPolicy:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in {"public", "bearer"}:
        return raw  # type: ignore[return-value]
    return default


def load_service_config(overrides: Optional[Dict[str, Any]] = None) -> ServiceConfig:
    overrides = overrides or {}
    cfg = ServiceConfig()

    access_cfg = overrides.get("access", {})
    cfg.access = AccessConfig(
        read_policy=_env_policy("TPI_READ_POLICY", access_cfg.get("read_policy", cfg.access.read_policy)),
        write_policy=_env_policy("TPI_WRITE_POLICY", access_cfg.get("write_policy", cfg.access.write_policy)),
        api_tokens=_env_list("TPI_API_TOKENS", access_cfg.get("api_tokens", cfg.access.api_tokens)),
    )
    cfg.environment = os.getenv("TPI_ENV", overrides.get("environment", cfg.environment))
    cfg.enable_cors = _env_bool("TPI_CORS_ENABLE", overrides.get("enable_cors", cfg.enable_cors))
    return cfg
