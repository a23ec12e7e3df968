import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import events
from constants import DEFAULT_ROOM, REQUIRE_TOKEN, VIDEO_TOKEN
from exceptions import NoActiveRoom, RoomFull, TargetNotFound, Unauthorized, UnknownEvent
from logging_config import get_logger
from registry import ConnectionRegistry, room_registry
from schemas.events import (
    AnswerPayload,
    CandidatePayload,
    ChatMessagePayload,
    JoinPayload,
    OfferPayload,
    SignalPayload,
)

logger = get_logger(__name__)


@dataclass
class Delivery:
    """Outbound event the transport must send to every connection in ``targets``."""
    event: str
    payload: Any
    targets: List[str] = field(default_factory=list)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RelayDispatcher:
    """Turns inbound events into deliveries.

    Handlers never await: every event is applied to the registry and its
    deliveries are computed in one step, so events are serialized by the
    event loop that calls ``dispatch``.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        require_token: bool = REQUIRE_TOKEN,
        access_token: str = VIDEO_TOKEN,
        default_room: str = DEFAULT_ROOM,
    ):
        self.registry = registry
        self.require_token = require_token
        self.access_token = access_token
        self.default_room = default_room
        self.handlers: Dict[str, Callable[[str, Any], List[Delivery]]] = {
            events.JOIN: self.join,
            events.OFFER: self.offer,
            events.ANSWER: self.answer,
            events.CANDIDATE: self.candidate,
            events.CHAT_MESSAGE: self.chat_message,
            events.SIGNAL: self.signal,
        }

    def dispatch(self, connection_id: str, event: str, payload: Any = None) -> List[Delivery]:
        handler = self.handlers.get(event)
        if handler is None:
            raise UnknownEvent(f"unknown event: {event}")
        return handler(connection_id, payload)

    def check_token(self, token: Optional[str]):
        if not (self.require_token and self.access_token):
            return
        if token is None or not hmac.compare_digest(token.encode(), self.access_token.encode()):
            raise Unauthorized()

    def join(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = JoinPayload.model_validate({} if payload is None else payload)
        room_id = request.room or self.default_room

        if self.registry.room_of(connection_id) == room_id:
            logger.debug(f"Ignoring repeated join of {connection_id} to room {room_id}")
            return []

        try:
            self.check_token(request.token)
            result = self.registry.join(connection_id, room_id, request.username)
        except (Unauthorized, RoomFull) as e:
            logger.info(f"Join of {connection_id} to room {room_id} rejected: {e.message}")
            return [Delivery(events.JOIN_ERROR, {"message": e.message}, [connection_id])]

        deliveries = []
        if result.left_room is not None:
            deliveries.extend(self.departure_notices(connection_id, result.left_room))

        username = self.registry.display_name_of(connection_id)
        if result.peers:
            deliveries.append(Delivery(events.READY, {"from": connection_id, "username": username}, sorted(result.peers)))
        deliveries.append(Delivery(events.JOINED, {"room": room_id, "id": connection_id}, [connection_id]))
        return deliveries

    def disconnect(self, connection_id: str) -> List[Delivery]:
        room_id = self.registry.disconnect(connection_id)
        if room_id is None:
            return []
        return self.departure_notices(connection_id, room_id)

    def departure_notices(self, connection_id: str, room_id: str) -> List[Delivery]:
        remaining = self.registry.members(room_id)
        if not remaining:
            return []
        return [Delivery(events.USER_DISCONNECTED, {"connectionId": connection_id}, sorted(remaining))]

    def room_targets(self, connection_id: str, room: Optional[str], include_sender: bool = False) -> List[str]:
        room_id = self.registry.resolve_target(room, connection_id)
        if not room_id:
            raise NoActiveRoom()
        members = self.registry.members(room_id)
        if not include_sender:
            members = members - {connection_id}
        return sorted(members)

    def relay(self, event: str, field_name: str, connection_id: str, room: Optional[str], body: Any) -> List[Delivery]:
        try:
            targets = self.room_targets(connection_id, room)
        except NoActiveRoom:
            logger.debug(f"Dropping {event} from {connection_id}: no active room")
            return []
        if not targets:
            logger.debug(f"Dropping {event} from {connection_id}: nobody else in the room")
            return []
        logger.debug(f"Relaying {event} from {connection_id} to {len(targets)} peer(s)")
        return [Delivery(event, {"from": connection_id, field_name: body}, targets)]

    def offer(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = OfferPayload.model_validate({} if payload is None else payload)
        return self.relay(events.OFFER, "offer", connection_id, request.room, request.offer)

    def answer(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = AnswerPayload.model_validate({} if payload is None else payload)
        return self.relay(events.ANSWER, "answer", connection_id, request.room, request.answer)

    def candidate(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = CandidatePayload.model_validate({} if payload is None else payload)
        return self.relay(events.CANDIDATE, "candidate", connection_id, request.room, request.candidate)

    def chat_message(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = ChatMessagePayload.model_validate({} if payload is None else payload)
        try:
            targets = self.room_targets(connection_id, request.room, include_sender=True)
        except NoActiveRoom:
            logger.debug(f"Dropping chat message from {connection_id}: no active room")
            return []
        if not targets:
            return []

        message = {
            "userId": request.user_id if request.user_id is not None else self.registry.display_name_of(connection_id),
            "message": request.message,
            "timestamp": request.timestamp if request.timestamp is not None else utc_timestamp(),
        }
        return [Delivery(events.CHAT_MESSAGE, message, targets)]

    def signal_target(self, to: str) -> str:
        if not self.registry.is_connected(to):
            raise TargetNotFound(f"peer not found: {to}")
        return to

    def signal(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = SignalPayload.model_validate(payload)
        try:
            target = self.signal_target(request.to)
        except TargetNotFound as e:
            logger.info(f"Dropping signal from {connection_id}: {e.message}")
            return []
        return [Delivery(events.SIGNAL, [request.to, request.from_, request.data], [target])]


relay_dispatcher = RelayDispatcher(room_registry)
