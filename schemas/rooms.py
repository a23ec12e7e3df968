from pydantic import BaseModel
from typing import Optional


class OnlineUser(BaseModel):
    connection_id: str
    display_name: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    max_users: Optional[int]
    online_users_count: int
    online_users: Optional[list[OnlineUser]] = None
    is_full: bool

class HealthResponse(BaseModel):
    status: str
    connections: int
