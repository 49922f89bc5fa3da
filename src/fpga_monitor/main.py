"""
FPGA Telemetry Monitor Main Application
=======================================

FastAPI entry point exposing the monitor's snapshots to presentation clients.

The application composes the core once per app instance:
    StateStore(WindowBuffer, FaultEvaluator) <- ConnectionManager

The manager and store live on ``app.state``; the lifespan starts the
connection on startup and stops it on every shutdown path.

Endpoints:
    GET  /             - Service information
    GET  /health       - Liveness probe (is process alive?)
    GET  /ready        - Readiness probe (stream connected?)
    GET  /snapshot     - Current snapshot
    GET  /metrics      - Stream, window and store counters
    WS   /ws/snapshot  - Push stream of snapshots
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from fpga_monitor.config import Settings, load_config, setup_logging
from fpga_monitor.models.state import Snapshot
from fpga_monitor.signals.fault import FaultEvaluator, FaultThresholds
from fpga_monitor.state.store import StateStore
from fpga_monitor.stream.manager import ConnectionManager, Connector
from fpga_monitor.stream.window import WindowBuffer


logger = logging.getLogger(__name__)


# Per-client queue bound for /ws/snapshot
CLIENT_QUEUE_SIZE = 100


# =============================================================================
# Composition
# =============================================================================

def build_monitor(
    settings: Settings,
    connector: Optional[Connector] = None,
) -> ConnectionManager:
    """
    Build the store and connection manager from settings.

    Args:
        settings: Loaded settings
        connector: Optional connector override (tests, custom transports)

    Returns:
        ConnectionManager wired to a fresh StateStore (``manager.store``)
    """
    store = StateStore(
        window=WindowBuffer(maxsize=settings.window.size),
        evaluator=FaultEvaluator(
            FaultThresholds(
                flow_max=settings.thresholds.flow_max,
                pressure_min=settings.thresholds.pressure_min,
            )
        ),
    )
    return ConnectionManager(
        url=settings.stream.resolved_url,
        store=store,
        reconnect_backoff_ms=settings.stream.reconnect_backoff_ms,
        reconnect_backoff_max_ms=settings.stream.reconnect_backoff_max_ms,
        backoff_factor=settings.stream.backoff_factor,
        backoff_jitter=settings.stream.backoff_jitter,
        max_reconnect_attempts=settings.stream.max_reconnect_attempts,
        connector=connector,
    )


def _enqueue_latest(queue: "asyncio.Queue[Snapshot]", snapshot: Snapshot) -> None:
    """Put a snapshot on a client queue, dropping the oldest if full."""
    if queue.full():
        try:
            queue.get_nowait()
            logger.warning("Snapshot client queue full, dropped oldest snapshot")
        except asyncio.QueueEmpty:
            pass
    queue.put_nowait(snapshot)


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (defaults to load_config())
        connector: Optional connector override for the stream

    Returns:
        Configured FastAPI app
    """
    if settings is None:
        settings = load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan manager with graceful shutdown."""
        app.state.startup_time = time.time()
        logger.info(f"Starting {settings.monitor.name} {settings.monitor.version}")
        logger.info(
            f"Stream environment: {settings.stream.environment.value}, "
            f"URL: {settings.stream.resolved_url}"
        )

        manager = build_monitor(settings, connector=connector)
        app.state.manager = manager
        app.state.store = manager.store

        async with manager:
            yield
            logger.info("Shutting down gracefully...")

        logger.info("Shutdown complete")

    app = FastAPI(
        title="FPGA Telemetry Monitor",
        description="Live FPGA telemetry ingestion and fault monitoring",
        version=settings.monitor.version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": "FPGA Telemetry Monitor",
            "version": settings.monitor.version,
            "name": settings.monitor.name,
            "status": "running",
            "environment": settings.stream.environment.value,
            "stream_url": settings.stream.resolved_url,
        })

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """
        Liveness probe - is the process alive?

        Always returns 200 if the service is running.
        """
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
        })

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """
        Readiness probe - is the stream connected?

        Returns 200 when connected, 503 otherwise.
        """
        manager: ConnectionManager = request.app.state.manager
        body = {
            "stream_connected": manager.connected,
            "connection_state": manager.state.value,
        }

        if manager.connected:
            return JSONResponse({"status": "ready", **body})
        return JSONResponse({"status": "not_ready", **body}, status_code=503)

    @app.get("/snapshot")
    async def snapshot(request: Request) -> JSONResponse:
        """Current published snapshot."""
        store: StateStore = request.app.state.store
        return JSONResponse(store.get_snapshot().to_dict())

    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Detailed metrics for observability."""
        manager: ConnectionManager = request.app.state.manager
        store: StateStore = request.app.state.store

        return JSONResponse({
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
            "connection_state": manager.state.value,
            "stream": manager.metrics.to_dict(),
            "window": store.window.metrics(),
            "store": store.metrics(),
        })

    @app.websocket("/ws/snapshot")
    async def snapshot_stream(websocket: WebSocket) -> None:
        """WebSocket endpoint pushing every new snapshot."""
        store: StateStore = websocket.app.state.store
        await websocket.accept()
        logger.info("Client connected to /ws/snapshot")

        queue: asyncio.Queue[Snapshot] = asyncio.Queue(maxsize=CLIENT_QUEUE_SIZE)
        _enqueue_latest(queue, store.get_snapshot())
        unsubscribe = store.subscribe(lambda snap: _enqueue_latest(queue, snap))

        async def send_snapshots() -> None:
            while True:
                current = await queue.get()
                await websocket.send_json(current.to_dict())

        async def wait_disconnect() -> None:
            # Inbound messages are ignored; only the disconnect matters
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return

        sender = asyncio.create_task(send_snapshots())
        receiver = asyncio.create_task(wait_disconnect())

        try:
            done, _ = await asyncio.wait(
                {sender, receiver},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in done:
                error = task.exception()
                if error is not None and not isinstance(error, WebSocketDisconnect):
                    logger.warning(f"WebSocket error: {error}")
        finally:
            sender.cancel()
            receiver.cancel()
            unsubscribe()
            logger.info("Client disconnected from /ws/snapshot")

    return app


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    settings = load_config()
    setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    main()
