from __future__ import annotations
import os
from dotenv import load_dotenv

load_dotenv()

def _get_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}

def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default

def normalize_db_url(url: str | None) -> str | None:
    """postgres:// (libpq style) -> postgresql+psycopg2:// pour SQLAlchemy."""
    if not url:
        return None
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg2://" + url[len(prefix):]
    return url

class Settings:
    """
    - DB: DATABASE_URL sinon CLIENT_POSTGRES_* / POSTGRES_*. Pas de fallback:
      sans URL le démarrage échoue.
    - Timeout par appel SQL: DB_TIMEOUT_SECONDS (pool + statement).
    - Logs, CORS: mêmes clés que les autres services.
    """
    def __init__(self) -> None:
        # Meta
        self.ENV = os.getenv("ENV", "dev")
        self.APP_NAME = os.getenv("APP_NAME", "client-api")
        self.APP_TITLE = os.getenv("APP_TITLE", "Client API")
        self.APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
        self.APP_DESCRIPTION = os.getenv("APP_DESCRIPTION", "API Clients CRUD")

        # Serveur
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = _get_int("PORT", 8080)

        # DB
        self.DATABASE_URL = normalize_db_url(os.getenv("DATABASE_URL") or self._compose_db_url())
        self.DB_ECHO = _get_bool("DB_ECHO", False)
        self.DB_TIMEOUT_SECONDS = _get_int("DB_TIMEOUT_SECONDS", 5)
        self.DB_POOL_SIZE = _get_int("DB_POOL_SIZE", 10)
        self.DB_MAX_OVERFLOW = _get_int("DB_MAX_OVERFLOW", 0)
        self.DB_CREATE_TABLES = _get_bool("DB_CREATE_TABLES", True)

        # Logs
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
        self.LOG_DIR = os.getenv("LOG_DIR", "logs")
        self.LOG_FILE = os.getenv("LOG_FILE", "app.log")
        self.LOG_ACCESS_FILE = os.getenv("LOG_ACCESS_FILE", "access.log")
        self.LOG_MAX_BYTES = _get_int("LOG_MAX_BYTES", 10 * 1024 * 1024)
        self.LOG_BACKUP_COUNT = _get_int("LOG_BACKUP_COUNT", 5)
        self.LOG_ENABLE_CONSOLE = _get_bool("LOG_ENABLE_CONSOLE", True)
        self.LOG_ENABLE_FILE = _get_bool("LOG_ENABLE_FILE", True)

        # CORS
        self.CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")]
        self.CORS_ALLOW_CREDENTIALS = _get_bool("CORS_ALLOW_CREDENTIALS", True)
        self.CORS_ALLOW_METHODS = os.getenv("CORS_ALLOW_METHODS", "*")
        self.CORS_ALLOW_HEADERS = os.getenv("CORS_ALLOW_HEADERS", "*")

    def _compose_db_url(self) -> str | None:
        # 1) CLIENT_POSTGRES_*
        pg_host = os.getenv("CLIENT_POSTGRES_HOST")
        pg_db   = os.getenv("CLIENT_POSTGRES_DB")
        pg_user = os.getenv("CLIENT_POSTGRES_USER")
        pg_pwd  = os.getenv("CLIENT_POSTGRES_PASSWORD", "")
        pg_port = os.getenv("CLIENT_POSTGRES_PORT", os.getenv("POSTGRES_PORT", "5432"))

        # 2) POSTGRES_* génériques si absent
        if not (pg_host and pg_db and pg_user):
            pg_host = os.getenv("POSTGRES_HOST", pg_host)
            pg_db   = os.getenv("POSTGRES_DB",   pg_db)
            pg_user = os.getenv("POSTGRES_USER", pg_user)
            pg_pwd  = os.getenv("POSTGRES_PASSWORD", pg_pwd)
            pg_port = os.getenv("POSTGRES_PORT", pg_port)

        if pg_host and pg_db and pg_user:
            return f"postgresql+psycopg2://{pg_user}:{pg_pwd}@{pg_host}:{pg_port}/{pg_db}"
        return None

settings = Settings()
