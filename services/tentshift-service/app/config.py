import os

SERVICE_NAME = "tentshift-service"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

DATABASE_ECHO = (os.getenv("DATABASE_ECHO") or "").lower() in ("1", "true", "yes")

JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")  # supabase-style tokens use "authenticated"

REDIS_URL = os.getenv("REDIS_URL")  # optional, view cache is off without it
AVAILABILITY_VIEW_TTL = int(os.getenv("AVAILABILITY_VIEW_TTL") or "60")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
