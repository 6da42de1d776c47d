"""FastAPI WebSocket server for the card game."""

import json
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import config
from game import ErrorKind, GameError
from handlers import ConnectionContext, dispatch, handle_disconnect, reply_error
from logging_config import connection_id_var, match_id_var, setup_logging
from middleware.request_id import RequestIDMiddleware
from routers.health import router as health_router, set_health_dependencies
from table import Table, create_table

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


async def _close_all_websockets(table: Table) -> None:
    """Close all active WebSocket connections gracefully."""
    for seat in list(table.seats.values()):
        try:
            await seat.websocket.close(code=1001, reason="Server shutting down")
        except Exception as e:
            logger.debug(f"Close of {seat.connection_id} failed: {e}")
    logger.info("All WebSocket connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the table on startup; match state lives only for the process."""
    table = create_table()
    app.state.table = table
    set_health_dependencies(table=table)

    logger.info(f"Card game server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets(table)
    set_health_dependencies(table=None)
    logger.info("Shutdown complete")


app = FastAPI(
    title="Card Game Server",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)
app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    table: Table = websocket.app.state.table
    connection_id = str(uuid.uuid4())
    token = connection_id_var.set(connection_id)
    match_token = match_id_var.set(table.match.match_id)

    ctx = ConnectionContext(websocket=websocket, connection_id=connection_id)
    table.connect(connection_id, websocket)
    logger.debug(f"WebSocket connected as {connection_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await reply_error(ctx, GameError(ErrorKind.INVALID_INTENT))
                continue
            await dispatch(data, ctx, table=table)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
    finally:
        await handle_disconnect(ctx, table=table)
        match_id_var.reset(match_token)
        connection_id_var.reset(token)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting card game server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
