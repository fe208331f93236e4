import logging
import logging.handlers
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Adopte1Etudiant"
    app_version: str = "1.0.0"

    database_url: str = "postgresql://adopte:adopte@db:5432/adopte"
    redis_url: str = "redis://redis:6379/0"
    run_migrations: bool = True

    # Signing / encryption
    secret_key: str = "change-me"
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    two_factor_token_minutes: int = 5
    oauth_token_minutes: int = 15
    totp_issuer: str = "Adopte1Etudiant"

    # Cookies / URLs
    cookie_secure: bool = False
    web_app_url: str = "http://localhost:3000"
    api_url: str = "http://localhost:8000"

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""

    # HTTP
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True
    trusted_hosts: str = "*"
    rate_limit_enabled: bool = True
    rate_limit_auth: str = "10/minute"

    # Admin bootstrap
    admin_email: str = ""
    admin_password: str = ""

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10 MB
    log_backup_count: int = 5

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def effective_database_url(self) -> str:
        """Database URL usable by SQLAlchemy.

        Driverless PostgreSQL URLs (including Heroku-style ``postgres://``) are
        pinned to psycopg2, the driver the project installs.
        """
        for scheme in ("postgres://", "postgresql://"):
            if self.database_url.startswith(scheme):
                return "postgresql+psycopg2://" + self.database_url[len(scheme):]
        return self.database_url

    @property
    def effective_jwt_secret(self) -> str:
        return self.jwt_secret or self.secret_key

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def trusted_hosts_list(self) -> list[str]:
        return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()] or ["*"]

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.api_url.rstrip('/')}/api/auth/google/callback"


settings = Settings()


def _rotating_handler(path: Path, config: Settings, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Settings | None = None) -> None:
    """Route all loggers to the console plus rotating files under ``log_dir``.

    ``app.log`` receives everything at DEBUG and above, ``error.log`` only
    errors. Safe to call again (e.g. per test app): handlers are replaced.
    """
    config = config or settings
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%H:%M:%S"))
    root.addHandler(console)

    detailed = logging.Formatter(
        "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root.addHandler(_rotating_handler(log_dir / "app.log", config, logging.DEBUG, detailed))
    root.addHandler(_rotating_handler(log_dir / "error.log", config, logging.ERROR, detailed))

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured: level=%s, dir=%s", config.log_level, log_dir)
