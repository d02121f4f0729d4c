"""
FastAPI entry point for the AAVA Jira Connect app.
"""
import os
import logging
import uuid
from typing import Optional

from dotenv import load_dotenv

# Load .env before the config is built; real environment variables win
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api.connect import PUBLIC_DIR, router as connect_router
from middleware.connect_auth import ConnectAuthenticator, ConnectAuthError
from services.credential_store import CredentialStore, create_credential_store
from services.gemini_client import GeminiClient
from src.aava_jira_connect.config import AppConfig
from src.aava_jira_connect.version import __version__

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    credential_store: Optional[CredentialStore] = None,
    gemini_client: Optional[GeminiClient] = None,
) -> FastAPI:
    """
    Build the app around one configuration.

    Args:
        config: App configuration
        credential_store: Tenant store (built from CONNECT_STORE_PATH when None)
        gemini_client: Gemini client (built from config when None)
    """
    app = FastAPI(
        title="AAVA Jira Connect",
        description="Jira Connect app that refines issue descriptions with Gemini",
        version=__version__,
    )

    store = credential_store if credential_store is not None else create_credential_store(
        config.CONNECT_STORE_PATH, config.CONNECT_STORE_KEY
    )
    app.state.config = config
    app.state.credential_store = store
    app.state.authenticator = ConnectAuthenticator(store, config.APP_BASE_URL)
    app.state.gemini_client = gemini_client or GeminiClient(config)

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        """Tag each request with an id for correlating log lines."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ConnectAuthError)
    async def connect_auth_exception_handler(request: Request, exc: ConnectAuthError):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": f"Authentication failed: {str(exc) or 'Unknown error'}"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": f"Invalid request: {problems}"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.error(f"Unhandled error (request_id={request_id}): {str(exc)}", exc_info=True)
        # Runs outside the request-id middleware, so the header is set here
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc) or type(exc).__name__},
            headers={"X-Request-ID": request_id} if request_id else None,
        )

    app.include_router(connect_router)
    app.mount("/public", StaticFiles(directory=str(PUBLIC_DIR)), name="public")

    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set - /enhance-description will fail until it is configured")

    return app


config = AppConfig.from_env()
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
app = create_app(config)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Server running on port {config.PORT}")
    # Behind Render-style proxies: trust X-Forwarded-* so the request scheme is https
    uvicorn.run(app, host="0.0.0.0", port=config.PORT, proxy_headers=True, forwarded_allow_ips="*")
