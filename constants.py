import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 9000))

# Comma separated list of allowed CORS origins, empty means any origin
ORIGINS = [origin.strip() for origin in os.getenv("ORIGIN", "").split(",") if origin.strip()]

REQUIRE_TOKEN = os.getenv("REQUIRE_TOKEN", "false") == "true"
VIDEO_TOKEN = os.getenv("VIDEO_TOKEN", "")

DEFAULT_ROOM = os.getenv("DEFAULT_ROOM", "default")
# 0 disables the limit (single shared room mode)
ROOM_CAPACITY = int(os.getenv("ROOM_CAPACITY", 2))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)
