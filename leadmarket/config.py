"""Runtime configuration for the app (read from env, replaceable during tests)."""
import os
from typing import NamedTuple, Optional


class Settings(NamedTuple):
    database_url: str
    jwt_secret: str
    seed_admin_key: Optional[str]
    upload_dir: str
    smtp_host: Optional[str]
    smtp_port: int
    smtp_user: Optional[str]
    smtp_pass: Optional[str]
    smtp_secure: bool
    notify_email: Optional[str]
    from_email: Optional[str]


def from_env() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./leadmarket.db"),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret"),
        seed_admin_key=os.getenv("SEED_ADMIN_KEY") or None,
        upload_dir=os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads")),
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=os.getenv("SMTP_USER") or None,
        smtp_pass=os.getenv("SMTP_PASS") or None,
        smtp_secure=os.getenv("SMTP_SECURE", "false") in ("1", "true", "True"),
        notify_email=os.getenv("NOTIFY_EMAIL") or os.getenv("ADMIN_EMAIL") or None,
        from_email=os.getenv("FROM_EMAIL") or os.getenv("SMTP_USER") or None,
    )


state = from_env()


def get_settings() -> Settings:
    return state


def configure(**overrides) -> Settings:
    global state
    state = state._replace(**overrides)
    return state


def reload() -> Settings:
    global state
    state = from_env()
    return state


def mailer_enabled() -> bool:
    return bool(state.smtp_host and state.smtp_user)
