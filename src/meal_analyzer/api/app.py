"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from meal_analyzer.api.models import (
    AnalyzeRequest,
    GeminiModelUpdate,
    ProviderUpdate,
    RecalculateRequest,
)
from meal_analyzer.app_logging import configure_logging
from meal_analyzer.containers import AppContainer
from meal_analyzer.domain.errors import AnalysisError, ErrorKind

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NO_CREDENTIAL: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.QUOTA_EXCEEDED: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.SCHEMA_VALIDATION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSIENT_BACKEND: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INVALID_IMAGE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORMATTING_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PIPELINE_EXHAUSTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def require_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller id set by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return x_user_id


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(
        request: Request, exc: AnalysisError
    ) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=_STATUS_BY_KIND.get(
                exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            content={"error": exc.user_message, "code": exc.code},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        request: Request,
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        """Analyze food photos into a nutrition record."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.pipeline.analyze(
            payload.images, user_id, payload.context
        )
        return record.to_payload()

    @app.post("/food/recalculate")
    async def recalculate(
        payload: RecalculateRequest,
        request: Request,
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        """Recompute nutrition for an edited ingredient list."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.pipeline.recalculate(
            payload.ingredients, user_id, payload.context
        )
        return record.to_payload()

    @app.put("/settings/provider")
    async def update_provider(
        payload: ProviderUpdate,
        request: Request,
        user_id: str = Depends(require_user_id),
    ) -> dict[str, str]:
        """Change the caller's preferred AI backend."""
        state_container: AppContainer = request.app.state.container
        state_container.provider_settings_service.set_preferred_provider(
            user_id, payload.provider
        )
        return {"provider": payload.provider.value}

    @app.put("/settings/gemini-model")
    async def update_gemini_model(
        payload: GeminiModelUpdate,
        request: Request,
        user_id: str = Depends(require_user_id),
    ) -> dict[str, str]:
        """Change the caller's preferred Gemini model."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.provider_settings_service.set_gemini_model(
                user_id, payload.model
            )
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        return {"model": payload.model}

    return app
