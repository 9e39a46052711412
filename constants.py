import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

WS_PATH = os.getenv("WS_PATH", "/ws")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Outbound frames buffered per connection before new ones are dropped
SEND_QUEUE_SIZE = int(os.getenv("SEND_QUEUE_SIZE", 256))
