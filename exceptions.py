class SignalingError(Exception):
    """Base class for errors local to a single inbound event."""

    message = "signaling error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthorized(SignalingError):
    message = "invalid token"


class RoomFull(SignalingError):
    message = "room full"


class TargetNotFound(SignalingError):
    message = "peer not found"


class NoActiveRoom(SignalingError):
    message = "no active room"


class UnknownEvent(SignalingError):
    message = "unknown event"
