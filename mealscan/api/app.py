"""
FastAPI application.

Routes:
- POST /api/analyze  meal photo -> nutrition estimate
- GET  /health       liveness
- GET  /version      APP_VERSION
- GET  /metrics      in-memory metrics snapshot

Error tiers map to responses here and only here:
client input -> 4xx, upstream -> pass-through status or 200 with a
diagnostic excerpt, anything else -> 500 ``{"error": "Server error"}``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mealscan.application.meal.analysis_service import MealAnalysisService
from mealscan.config import Settings, load_settings
from mealscan.domain.shared.errors import (
    ModelOutputError,
    UpstreamHTTPError,
    ValidationError,
)
from mealscan.infrastructure.ai.factory import VisionClient, create_vision_client
from mealscan.logging_config import configure_logging
from mealscan.metrics import analysis as metrics

logger = structlog.get_logger(__name__)

ANALYZE_PATH = "/api/analyze"


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Request body as a dict; anything else (or no body) becomes {}."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def create_app(
    settings: Optional[Settings] = None,
    vision_client: Optional[VisionClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (default: ``load_settings()``)
        vision_client: Pre-built client (default: ``create_vision_client``)

    Raises:
        ValueError: If the OpenAI provider is configured without an API key
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_format)
    client = vision_client or create_vision_client(settings)
    service = MealAnalysisService(client=client, settings=settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        startup = logging.getLogger("startup")
        startup.info(
            "startup.config provider=%s model=%s key=%s policy=%s",
            settings.vision_provider,
            client.model,
            settings.masked_api_key(),
            settings.total_policy.value,
        )
        try:
            yield
        finally:
            await client.aclose()
            startup.info("lifespan.shutdown")

    app = FastAPI(
        title="Meal Photo Nutrition Analysis",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.analysis_service = service

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            return JSONResponse(
                status_code=405,
                content={"error": "Method not allowed"},
                headers=exc.headers,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=exc.headers,
        )

    @app.post(ANALYZE_PATH)
    async def analyze(request: Request) -> JSONResponse:
        try:
            body = await _read_json_object(request)
            result = await service.analyze(body.get("imageBase64"))
        except ValidationError as exc:
            return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
        except UpstreamHTTPError as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": "OpenAI API error",
                    "status": exc.status_code,
                    "details": exc.details,
                },
            )
        except ModelOutputError as exc:
            return JSONResponse(status_code=200, content=exc.to_payload())
        except Exception as exc:
            logger.exception("analyze.error")
            return JSONResponse(
                status_code=500,
                content={"error": "Server error", "details": str(exc) or type(exc).__name__},
            )
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    async def version() -> dict[str, str]:
        return {"version": settings.app_version}

    @app.get("/metrics")
    async def metrics_snapshot() -> Any:
        return metrics.snapshot()

    return app
