import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


@dataclass(frozen=True)
class Settings:
    env: str
    database_url: str

    db_server: str
    db_port: int
    db_database: str
    db_user: str
    db_password: str
    db_driver: str
    db_encrypt: bool
    db_trust_server_certificate: bool

    db_pool_size: int
    db_max_overflow: int
    db_pool_timeout: int

    cors_origins: tuple[str, ...]
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None


def load_settings() -> Settings:
    origins = tuple(o.strip() for o in _getenv("CORS_ORIGINS", "*").split(",") if o.strip())
    return Settings(
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", ""),
        db_server=_getenv("DB_SERVER", ""),
        db_port=_getenv_int("DB_PORT", 1433),
        db_database=_getenv("DB_DATABASE", ""),
        db_user=_getenv("DB_USER", ""),
        db_password=os.environ.get("DB_PASSWORD") or "",
        db_driver=_getenv("DB_DRIVER", "ODBC Driver 18 for SQL Server"),
        db_encrypt=_getenv_bool("DB_ENCRYPT", True),
        db_trust_server_certificate=_getenv_bool("DB_TRUST_SERVER_CERTIFICATE", False),
        db_pool_size=_getenv_int("DB_POOL_SIZE", 5),
        db_max_overflow=_getenv_int("DB_MAX_OVERFLOW", 10),
        db_pool_timeout=_getenv_int("DB_POOL_TIMEOUT", 30),
        cors_origins=origins or ("*",),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def build_database_url(s: Settings) -> str | URL:
    """
    DATABASE_URL wins when set; otherwise a SQL Server URL is assembled from DB_*.
    Returns "" when nothing is configured.
    """
    if s.database_url:
        return s.database_url
    if not s.db_server:
        return ""
    return URL.create(
        "mssql+pyodbc",
        username=s.db_user or None,
        password=s.db_password or None,
        host=s.db_server,
        port=s.db_port,
        database=s.db_database or None,
        query={
            "driver": s.db_driver,
            "Encrypt": "yes" if s.db_encrypt else "no",
            "TrustServerCertificate": "yes" if s.db_trust_server_certificate else "no",
        },
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "ENV": s.env,
        "DATABASE_URL": build_database_url(s),
        "DB_POOL_SIZE": s.db_pool_size,
        "DB_MAX_OVERFLOW": s.db_max_overflow,
        "DB_POOL_TIMEOUT": s.db_pool_timeout,
        "CORS_ORIGINS": list(s.cors_origins),
        "LOG_LEVEL": s.log_level,
    }
