import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from app.api.routes import api_router
from app.core.config import settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title=settings.app_name)
    # Browsers reject credentials with a wildcard origin
    cors_origins = settings.cors_origins
    allow_creds = cors_origins != "*"
    if cors_origins == "*":
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_creds,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def inject_request_context(request: Request, call_next):
        client_id = request.headers.get(settings.client_id_header)
        if client_id:
            request.state.client_id = client_id
        company_id = request.headers.get(settings.company_id_header)
        if company_id:
            request.state.company_id = company_id
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"detail": "internal_error"})
        return response

    app.include_router(api_router)
    return app


app = create_app()
