"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from clinicflow.observability.correlation import (
    CORRELATION_ID_HEADER,
    reset_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)

from .routers import public
from .routes import messages, whatsapp


def create_app() -> FastAPI:
    """Create the dashboard-facing API.

    Returns:
        FastAPI app with health, WhatsApp link and message history routes.
    """
    app = FastAPI(
        title="clinicflow",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)
    app.include_router(whatsapp.router)
    app.include_router(messages.router)

    return app
