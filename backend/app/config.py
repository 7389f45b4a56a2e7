"""
Runtime configuration for the Browsy backend.

Values come from the environment, with a `.env` file in the backend folder
loaded first.
"""

import os
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load .env from backend folder (parent of app)
env_path = pathlib.Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SettlePolicy:
    """Pauses (seconds) applied after each replay step, plus wait bounds."""
    navigation: float = 1.0
    scroll: float = 0.5
    input: float = 0.5
    click: float = 1.0
    keydown: float = 0.5
    hold_open: float = 3.0
    navigation_timeout: float = 30.0
    selector_timeout: float = 5.0

    @classmethod
    def instant(cls) -> "SettlePolicy":
        """No settle delays; timeouts kept short."""
        return cls(
            navigation=0, scroll=0, input=0, click=0, keydown=0, hold_open=0,
            navigation_timeout=1.0, selector_timeout=0.1
        )

    def for_kind(self, kind: str) -> float:
        return getattr(self, kind, 0.0)


@dataclass
class Settings:
    data_dir: str = "data"
    sessions_file: str = "sessions.json"
    host: str = "0.0.0.0"
    port: int = 3100
    headless: bool = False
    replay_timeout: float = 300.0
    user_agent: str = "Browsy/1.0"
    fast_path_timeout: float = 15.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    settle: SettlePolicy = field(default_factory=SettlePolicy)

    @property
    def sessions_path(self) -> str:
        return os.path.join(self.data_dir, self.sessions_file)


def load_settings() -> Settings:
    """Build settings from the current environment."""
    defaults = Settings()

    cors_origins_env = os.getenv("CORS_ORIGINS", "")
    if cors_origins_env:
        allowed_origins = [origin.strip() for origin in cors_origins_env.split(",")]
    else:
        # The recorder extension posts from chrome-extension:// origins
        allowed_origins = defaults.cors_origins

    return Settings(
        data_dir=os.getenv("BROWSY_DATA_DIR", defaults.data_dir),
        sessions_file=os.getenv("BROWSY_SESSIONS_FILE", defaults.sessions_file),
        host=os.getenv("HOST", defaults.host),
        port=int(os.getenv("PORT", defaults.port)),
        headless=_env_bool("BROWSY_HEADLESS", defaults.headless),
        replay_timeout=float(os.getenv("BROWSY_REPLAY_TIMEOUT", defaults.replay_timeout)),
        user_agent=os.getenv("BROWSY_USER_AGENT", defaults.user_agent),
        fast_path_timeout=float(os.getenv("BROWSY_FAST_PATH_TIMEOUT", defaults.fast_path_timeout)),
        cors_origins=allowed_origins,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )


# Singleton
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings instance"""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
