import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from community.api.v1.router import api_router
from community.core.config import settings
from community.core.errors import CommunityError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


async def community_error_handler(request: Request, exc: CommunityError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("request failed", extra={"path": request.url.path, "code": exc.code})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)
    app.add_exception_handler(CommunityError, community_error_handler)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
