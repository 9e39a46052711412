from typing import Callable, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState

from constants import CORS_ORIGINS, LOG_FILE, LOG_FORMAT, LOG_LEVEL, SEND_QUEUE_SIZE, WS_PATH
from connection import WebSocketConnection
from logging_config import get_logger, setup_logging
from membership import MembershipManager, generate_room_id
from routers.rooms import rooms_router
from schemas.rooms import HealthResponse
from session import SessionEventHandler

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE, log_format=LOG_FORMAT)
logger = get_logger(__name__)


async def websocket_endpoint(websocket: WebSocket):
    """Chat socket. Every text frame is a JSON envelope handled by the session handler."""
    session: SessionEventHandler = websocket.app.state.session

    await websocket.accept()
    conn = WebSocketConnection(websocket, queue_size=websocket.app.state.send_queue_size)
    conn.start()
    logger.info(f"WebSocket connection accepted: {conn.id} from {websocket.client}")
    session.on_connect(conn)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(code=message.get("code", 1000))
            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            session.on_message(conn, data)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected for connection {conn.id} (code {e.code})")
        session.on_close(conn)
    except Exception as e:
        logger.error(f"WebSocket error for connection {conn.id}: {e}", exc_info=True)
        session.on_error(conn, e)
    finally:
        await conn.close()
        if websocket.application_state == WebSocketState.CONNECTED and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")


def create_app(
    id_generator: Callable[[], str] = generate_room_id,
    membership: Optional[MembershipManager] = None,
    send_queue_size: int = SEND_QUEUE_SIZE,
) -> FastAPI:
    app = FastAPI(title="Room Relay")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    membership = membership if membership is not None else MembershipManager(id_generator=id_generator)
    app.state.membership = membership
    app.state.session = SessionEventHandler(membership)
    app.state.send_queue_size = send_queue_size

    app.include_router(rooms_router)
    app.add_api_websocket_route(WS_PATH, websocket_endpoint)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        with membership.lock:
            return HealthResponse(
                status="ok",
                rooms=len(membership.rooms),
                connections=membership.registry.connection_count,
            )

    logger.info(f"FastAPI application initialized, chat socket at {WS_PATH}")
    return app


app = create_app()
