"""FastAPI server for meta-registry."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import DeploymentError, MetaError
from ..logging import get_logger
from .middleware import RequestIDMiddleware, RequestLoggingMiddleware
from .routes import router

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create the registry API application."""
    app = FastAPI(
        title="meta-registry",
        description="Service revision registry with key and compatibility validation",
        version=__version__,
    )

    # Added in reverse: the request ID must be set before logging reads it
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(MetaError)
    async def meta_error_handler(request: Request, exc: MetaError):
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(DeploymentError)
    async def deployment_error_handler(request: Request, exc: DeploymentError):
        return JSONResponse(status_code=400, content={"code": None, "message": str(exc)})

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "ok", "version": __version__}

    app.include_router(router)
    return app


app = create_app()
