"""Application configuration loaded from environment variables."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- Security ---
SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# --- Acting user ---
DEFAULT_USERNAME: str = os.getenv("DEFAULT_USERNAME", "defaultuser")
DEFAULT_PASSWORD: str = os.getenv("DEFAULT_PASSWORD", "defaultpassword")
ALLOW_DEFAULT_USER: bool = _env_bool("ALLOW_DEFAULT_USER", True)

# --- Storage ---
# "memory" keeps records for the process lifetime, "sql" uses DATABASE_URL.
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").lower()
DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'folioforge.db'}")

# --- GitHub ---
GITHUB_API_URL: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")
GITHUB_TIMEOUT: float = float(os.getenv("GITHUB_TIMEOUT", "10"))
GITHUB_REPO_LIMIT: int = int(os.getenv("GITHUB_REPO_LIMIT", "10"))
GITHUB_CACHE_TTL: int = int(os.getenv("GITHUB_CACHE_TTL", "300"))
GITHUB_CACHE_SIZE: int = int(os.getenv("GITHUB_CACHE_SIZE", "100"))

# --- Uploads ---
UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads"))
MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))

# --- Rate Limiting ---
RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", True)
CONTACT_RATE_LIMIT: str = os.getenv("CONTACT_RATE_LIMIT", "5/minute")
GITHUB_RATE_LIMIT: str = os.getenv("GITHUB_RATE_LIMIT", "30/minute")

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
