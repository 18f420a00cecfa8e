from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

CONFIG_FILE = "config.toml"

# Custom search engine configured for image search
DEFAULT_CSE_ID = "003141582324323361145:f5zyrk9_8_m"


@dataclass
class GoogleConfig:
    """Google Custom Search configuration."""
    api_key: str
    cse_id: str = DEFAULT_CSE_ID
    search_timeout: float = 10  # seconds
    upload_timeout: float = 30  # seconds

    def __post_init__(self):
        if not isinstance(self.api_key, str) or not self.api_key.strip():
            raise ValueError(
                "Missing required config key: google.api_key (or GOOGLE_API_KEY env var)")
        if not self.cse_id:
            raise ValueError("google.cse_id must not be empty")
        if self.search_timeout <= 0 or self.upload_timeout <= 0:
            raise ValueError("google timeouts must be positive")


@dataclass
class BotConfig:
    homeserver: str
    user_id: str
    google: GoogleConfig
    device_id: str = "DEV1"
    display_name: Optional[str] = None
    log_level: str = "INFO"
    command_prefix: str = "!"
    allowed_rooms: list[str] = None  # List of allowed room IDs

    def __post_init__(self):
        """Initialize default values for mutable fields."""
        if self.allowed_rooms is None:
            self.allowed_rooms = []

    @property
    def access_token(self) -> str:
        token = os.getenv("MATRIX_ACCESS_TOKEN")
        if not token:
            raise RuntimeError(
                "MATRIX_ACCESS_TOKEN not set in environment or .env file")
        return token


def load_google_config(data: dict) -> GoogleConfig:
    """Build the [google] section, preferring GOOGLE_API_KEY from the environment."""
    google = dict(data)
    env_key = os.getenv("GOOGLE_API_KEY")
    if env_key:
        google["api_key"] = env_key
    if "api_key" not in google:
        raise ValueError(
            "Missing required config key: google.api_key (or GOOGLE_API_KEY env var)")
    return GoogleConfig(**google)


def load_config(path: str = CONFIG_FILE) -> BotConfig:
    load_dotenv()
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Config file '{path}' not found. Create it from config.example.toml")
    with open(path, "rb") as f:
        data = tomllib.load(f)
    bot = data.get("bot", {})
    required = ["homeserver", "user_id"]
    for r in required:
        if r not in bot:
            raise ValueError(f"Missing required config key: bot.{r}")

    # Handle allowed_rooms - ensure it's a list
    if "allowed_rooms" in bot and not isinstance(bot["allowed_rooms"], list):
        bot["allowed_rooms"] = [bot["allowed_rooms"]]

    # The API key has no built-in default; fail at startup if it is absent
    bot["google"] = load_google_config(data.get("google", {}))

    return BotConfig(**bot)
