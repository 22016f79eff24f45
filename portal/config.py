import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENV = os.getenv("ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/portal.db")

# JWT Configuration
# No default secret: the token service refuses to start without one
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ISSUER = os.getenv("JWT_ISSUER", "elterngeld-portal")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "elterngeld-portal-api")
JWT_ACCESS_EXPIRY_MINUTES = int(os.getenv("JWT_ACCESS_EXPIRY_MINUTES", "15"))
JWT_REFRESH_EXPIRY_HOURS = int(os.getenv("JWT_REFRESH_EXPIRY_HOURS", "168"))
# Minimum secret length enforced outside development
JWT_MIN_SECRET_LENGTH = 32

# Revocation list: "memory" (process-local) or "redis" (shared across instances)
REVOCATION_BACKEND = os.getenv("REVOCATION_BACKEND", "memory").lower()
REVOCATION_SWEEP_INTERVAL_SECONDS = int(os.getenv("REVOCATION_SWEEP_INTERVAL_SECONDS", "300"))

# Role permission lists are cached in Redis for at most this long
PERMISSION_CACHE_TTL_SECONDS = int(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "60"))

# Development helpers
SEED_DATA = os.getenv("SEED_DATA", "false").lower() == "true"
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@elterngeld-portal.de")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]


def is_production() -> bool:
    return ENV.lower() == "production"
