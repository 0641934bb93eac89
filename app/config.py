import os

# Settings are read once at import time; set environment variables before starting the app.
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
POKEAPI_BASE_URL = os.getenv("POKEAPI_BASE_URL", "https://pokeapi.co/api/v2")
SEED_LIMIT = int(os.getenv("SEED_LIMIT", "151"))
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "10"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "5.0"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SEED_URL = f"{POKEAPI_BASE_URL}/pokemon?limit={SEED_LIMIT}"
