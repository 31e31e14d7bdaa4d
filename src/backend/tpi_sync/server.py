from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, Literal, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import ServiceConfig, load_service_config
from .errors import AccessDeniedError, SyncServiceError
from .repository import build_repository_from_env
from .service import TpiSyncService

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

ISO_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class TpiSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_date: Optional[date] = Field(default=None, alias="date")
    data: Any = None

    @field_validator("record_date", mode="before")
    @classmethod
    def _require_iso_date(cls, value: Any) -> Any:
        if value is None:
            return value
        if not isinstance(value, str) or not ISO_DATE_PATTERN.fullmatch(value):
            raise ValueError("date must be a YYYY-MM-DD string")
        return value


class SyncResponse(BaseModel):
    message: str


class TimeResponse(BaseModel):
    message: str
    time: str
    env: str


def create_app(
    service: Optional[TpiSyncService] = None,
    config: Optional[ServiceConfig] = None,
) -> FastAPI:
    cfg = config or load_service_config()
    sync_service = service or TpiSyncService(build_repository_from_env(), environment=cfg.environment)

    @asynccontextmanager
    async def lifespan(target_app: FastAPI):
        await asyncio.to_thread(sync_service.check_storage)
        yield

    app = FastAPI(title="TPI Sync API", version="0.1.0", lifespan=lifespan)
    app.state.config = cfg
    app.state.service = sync_service

    if cfg.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(SyncServiceError, _handle_service_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)

    @app.get("/api/time", response_model=TimeResponse)
    async def server_time(request: Request) -> Dict[str, str]:
        return _get_service(request).health_check().as_dict()

    @app.post(
        "/api/tpi",
        response_model=SyncResponse,
        dependencies=[Depends(_require_access("write"))],
    )
    async def sync_tpi(payload: TpiSyncRequest, request: Request) -> SyncResponse:
        service = _get_service(request)
        message = await asyncio.to_thread(service.upsert, payload.record_date, payload.data)
        return SyncResponse(message=message)

    @app.get("/api/tpi/history", dependencies=[Depends(_require_access("read"))])
    async def tpi_history(request: Request) -> JSONResponse:
        history = await asyncio.to_thread(_get_service(request).get_history)
        return JSONResponse(content=history)

    return app


def _get_service(request: Request) -> TpiSyncService:
    return request.app.state.service


def _require_access(scope: Literal["read", "write"]):
    async def dependency(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    ) -> None:
        access = request.app.state.config.access
        if access.policy_for(scope) == "public":
            return
        if credentials is None or credentials.credentials not in access.api_tokens:
            logger.warning("Rejected %s request to %s without a valid token", scope, request.url.path)
            raise AccessDeniedError("Missing or invalid bearer token")

    return dependency


async def _handle_service_error(request: Request, exc: SyncServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {detail}"})


app = create_app()
