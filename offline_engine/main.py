"""
Offline gateway - FastAPI application
Runs the offline engine as a local proxy in front of the competition backend
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from offline_engine.cache.core import RequestDescriptor
from offline_engine.engine import OfflineEngine
from offline_engine.errors import InstallError
from offline_engine.queue.records import SyncTag
from config.settings import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("gateway")

# Version tracking
APP_VERSION = "v1.0.0"
APP_NAME = "Offline Gateway"

ENGINE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Identifies a client session across requests
CLIENT_ID_HEADER = "X-Client-Id"


def register_client(engine: OfflineEngine, request: Request) -> None:
    client_id = request.headers.get(CLIENT_ID_HEADER)
    if client_id:
        engine.lifecycle.register_client(client_id)


def origin_request(engine: OfflineEngine, request: Request, body: bytes) -> RequestDescriptor:
    """
    Describe an intercepted request in terms of the origin.

    Cache keys are built from the URL, so the request is re-addressed to the
    origin to share the key space install seeds the caches with.
    """
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return RequestDescriptor(
        method=request.method,
        url=engine.origin.url_for(path),
        headers=dict(request.headers),
        body=body,
        destination=request.headers.get("sec-fetch-dest", ""),
    )


def create_app(engine: Optional[OfflineEngine] = None, install: bool = True) -> FastAPI:
    """
    Build the gateway application.

    Args:
        engine: Pre-built engine; built from settings on startup if omitted
        install: Run install (and activation) on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.engine is None:
            app.state.engine = OfflineEngine.from_settings(settings)
        if install:
            try:
                await run_in_threadpool(app.state.engine.lifecycle.install)
            except InstallError as e:
                logger.error(f"Install failed, serving without precached assets: {e}")
        yield
        app.state.engine.shutdown()

    app = FastAPI(
        title=APP_NAME,
        description="Offline-first caching and mutation sync for live competition clients",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.engine = engine

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok", "mode": "offline-gateway"}

    @app.get("/version")
    def version_info():
        """Version information endpoint."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "engineVersion": settings.engine_version,
            "full": f"{APP_NAME} {APP_VERSION}",
        }

    @app.get("/_engine/stats")
    def engine_stats(request: Request):
        """Get cache, queue and sync statistics."""
        return request.app.state.engine.get_stats()

    @app.post("/_engine/message")
    async def post_message(request: Request):
        """
        Command channel from the host application.

        Replies with the command's result, or 204 for commands without one.
        """
        message = await request.json()
        engine: OfflineEngine = request.app.state.engine
        register_client(engine, request)
        try:
            reply = await run_in_threadpool(engine.handle_message, message)
        except ValidationError as e:
            return JSONResponse(
                status_code=422,
                content={"error": "Invalid message", "detail": e.errors(include_url=False)},
            )
        if reply is None:
            return Response(status_code=204)
        return reply

    @app.delete("/_engine/clients/{client_id}", status_code=204)
    def disconnect_client(client_id: str, request: Request):
        """Forget a client session that has closed."""
        request.app.state.engine.lifecycle.clients.disconnect(client_id)
        return Response(status_code=204)

    @app.post("/_engine/sync")
    async def sync_now(request: Request):
        """Manual sync of every tag."""
        engine: OfflineEngine = request.app.state.engine
        results = await run_in_threadpool(engine.sync_now)
        return {tag: result.to_dict() for tag, result in results.items()}

    @app.post("/_engine/sync/pending")
    async def sync_pending(request: Request):
        """Fire the sync tags requested since the last call."""
        engine: OfflineEngine = request.app.state.engine
        results = await run_in_threadpool(engine.sync_pending)
        return {tag: result.to_dict() for tag, result in results.items()}

    @app.post("/_engine/sync/{tag}")
    async def sync_tag(tag: str, request: Request):
        """Deliver a sync trigger for one tag."""
        parsed = SyncTag.parse(tag)
        if parsed is None:
            raise HTTPException(status_code=404, detail=f"Unknown sync tag: {tag}")
        engine: OfflineEngine = request.app.state.engine
        result = await run_in_threadpool(engine.sync, parsed)
        return result.to_dict()

    @app.api_route("/{full_path:path}", methods=ENGINE_METHODS)
    async def intercept(full_path: str, request: Request):
        """Every other request goes through the engine."""
        engine: OfflineEngine = request.app.state.engine
        register_client(engine, request)
        descriptor = origin_request(engine, request, await request.body())
        snapshot = await run_in_threadpool(engine.handle, descriptor)
        return Response(
            content=snapshot.body,
            status_code=snapshot.status,
            headers=snapshot.headers,
        )

    return app


app = create_app()
