"""Entry point for a ClaimSync instance."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from common.constants import CORS_HEADERS
from common.logging_config import setup_logging
from claimsync.config import Settings, load_settings
from claimsync.database import get_db_connection, init_database
from claimsync.exceptions import (
    ClaimSyncException,
    AuthorizationError,
    InvalidSyncCredentialsError,
    InvalidRequestError,
    UnknownActionError,
    ClaimNotFoundError,
    LinkedWorkspaceNotFoundError,
    PeerSyncError
)
from claimsync.peer_client import PeerClient
from claimsync.routes.storage_routes import router as storage_router
from claimsync.routes.sync_routes import router as sync_router
from claimsync.services.aggregator import RecordAggregator
from claimsync.services.sync_initiator import SyncInitiator
from claimsync.services.sync_receiver import SyncReceiver
from claimsync.storage import StorageService
from claimsync.sync_scheduler import AutoSyncScheduler

logger = setup_logging('instance')


def _error_response(status_code: int, exc: Exception, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc) or type(exc).__name__, "code": code},
        headers=CORS_HEADERS
    )


async def invalid_sync_credentials_handler(request: Request, exc: InvalidSyncCredentialsError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Invalid sync credentials: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, exc, "INVALID_SYNC_CREDENTIALS")


async def authorization_error_handler(request: Request, exc: AuthorizationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Unauthorized sync request: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_401_UNAUTHORIZED, exc, "UNAUTHORIZED")


async def unknown_action_handler(request: Request, exc: UnknownActionError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Unknown action: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, exc, "UNKNOWN_ACTION")


async def invalid_request_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Invalid request: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, exc, "INVALID_REQUEST")


async def claim_not_found_handler(request: Request, exc: ClaimNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Claim not found: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_404_NOT_FOUND, exc, "CLAIM_NOT_FOUND")


async def linked_workspace_not_found_handler(request: Request, exc: LinkedWorkspaceNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Linked workspace not found: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_404_NOT_FOUND, exc, "LINKED_WORKSPACE_NOT_FOUND")


async def peer_sync_error_handler(request: Request, exc: PeerSyncError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Peer sync error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "PEER_SYNC_FAILED")


async def claimsync_exception_handler(request: Request, exc: ClaimSyncException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"ClaimSync exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "INTERNAL_ERROR")


async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "INTERNAL_ERROR")


def create_app(
    settings: Optional[Settings] = None,
    peer_transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build a ClaimSync instance application.

    Args:
        settings: Instance configuration; read from the environment when omitted
        peer_transport: Optional transport for outbound peer calls (tests wire
            two in-process instances together through it)

    Returns:
        Configured FastAPI application
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Start background tasks on startup and release resources on shutdown.
        """
        logger.info(f"ClaimSync instance '{settings.instance_name}' starting up at {settings.public_url}")
        await app.state.scheduler.start()
        yield
        logger.info("ClaimSync instance shutting down...")
        await app.state.scheduler.stop()
        await app.state.peer_client.close()
        logger.info("Peer client closed")

    app = FastAPI(
        title="ClaimSync Instance",
        description="Cross-instance insurance claim replication service",
        version="1.0.0",
        lifespan=lifespan
    )

    init_database(settings.database_path)
    logger.info(f"Database initialized at {settings.database_path}")

    storage = StorageService(settings.storage_path, settings.public_url, settings.storage_signing_key)
    peer_client = PeerClient(timeout=settings.peer_timeout_seconds, transport=peer_transport)
    aggregator = RecordAggregator(
        settings.database_path, storage, settings.public_url, settings.instance_name
    )
    initiator = SyncInitiator(
        settings.database_path,
        aggregator,
        peer_client,
        sync_concurrency=settings.sync_concurrency,
        claim_sync_secret=settings.claim_sync_secret,
    )
    receiver = SyncReceiver(settings.database_path, storage, peer_client)
    scheduler = AutoSyncScheduler(initiator, settings.auto_sync_interval_seconds)

    app.state.settings = settings
    app.state.storage = storage
    app.state.peer_client = peer_client
    app.state.initiator = initiator
    app.state.receiver = receiver
    app.state.scheduler = scheduler

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    app.add_exception_handler(InvalidSyncCredentialsError, invalid_sync_credentials_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(UnknownActionError, unknown_action_handler)
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)
    app.add_exception_handler(ValidationError, invalid_request_handler)
    app.add_exception_handler(RequestValidationError, invalid_request_handler)
    app.add_exception_handler(ClaimNotFoundError, claim_not_found_handler)
    app.add_exception_handler(LinkedWorkspaceNotFoundError, linked_workspace_not_found_handler)
    app.add_exception_handler(PeerSyncError, peer_sync_error_handler)
    app.add_exception_handler(ClaimSyncException, claimsync_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(sync_router)
    app.include_router(storage_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "ClaimSync Instance API", "instance": settings.instance_name, "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.
        Reports database connectivity.
        """
        try:
            with get_db_connection(settings.database_path) as conn:
                conn.execute("SELECT 1")
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {str(e)}"

        healthy = db_status == "ok"
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "healthy" if healthy else "unhealthy", "service": "claimsync", "database": db_status}
        )

    return app


def main() -> None:
    """
    Start the instance server with uvicorn.
    """
    settings = load_settings()
    setup_logging('instance', settings.log_level, settings.instance_name)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port
    )


if __name__ == "__main__":
    main()
