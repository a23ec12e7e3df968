from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from routers.rooms import rooms_router
from dispatcher import Delivery, relay_dispatcher
from exceptions import UnknownEvent
from schemas.events import Envelope
from schemas.rooms import HealthResponse
import events
import uuid
import asyncio
from typing import Dict, Iterable
from logging_config import get_logger, setup_logging
from constants import LOG_FILE, LOG_LEVEL, ORIGINS

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI()

# Configure CORS, any origin unless ORIGIN lists some
app.add_middleware(
    CORSMiddleware,
    allow_origins=ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info(f"FastAPI application initialized (allowed origins: {ORIGINS or '*'})")

# Live sockets of this process
# Format: {connection_id: websocket}
connections: Dict[str, WebSocket] = {}


async def send_event(connection_id: str, event: str, payload) -> bool:
    websocket = connections.get(connection_id)
    if websocket is None:
        logger.debug(f"Skipping {event} to {connection_id}: socket already gone")
        return False
    await websocket.send_json({"event": event, "data": payload})
    return True


async def deliver(deliveries: Iterable[Delivery]):
    """Send every delivery to its targets concurrently. A failing socket does not stop the others."""
    send_tasks = []
    for delivery in deliveries:
        for target in delivery.targets:
            send_tasks.append(send_event(target, delivery.event, delivery.payload))
    if not send_tasks:
        return

    results = await asyncio.gather(*send_tasks, return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            logger.warning(f"Error sending event to a connection: {result}")


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", connections=len(connections))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling socket.

    Every frame, in both directions, is a JSON object {"event": name, "data": payload}.
    """
    await websocket.accept()
    connection_id = uuid.uuid4().hex
    connections[connection_id] = websocket
    relay_dispatcher.registry.connect(connection_id)
    logger.info(f"New client connected: {connection_id} (clients connected: {len(connections)})")

    try:
        await send_event(connection_id, events.CONNECTED, {"id": connection_id})

        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is None:
                continue
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            try:
                envelope = Envelope.model_validate_json(data)
                deliveries = relay_dispatcher.dispatch(connection_id, envelope.event, envelope.data)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed message from {connection_id}: {e.error_count()} validation error(s)")
                continue
            except UnknownEvent as e:
                logger.warning(f"Ignoring message from {connection_id}: {e.message}")
                continue

            await deliver(deliveries)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Registry cleanup happens before any await so it also runs when the task is cancelled
        connections.pop(connection_id, None)
        departures = relay_dispatcher.disconnect(connection_id)
        logger.info(f"Peer disconnected with ID {connection_id}. Clients connected: {len(connections)}")
        # departure notices go out even while this task is being cancelled
        await asyncio.shield(deliver(departures))
