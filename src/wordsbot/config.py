"""Configuration settings for the bot."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Review settings
GRADE_BUTTONS_PER_ROW = 3
WORD_STATUSES = ["learning", "reviewing", "mastered"]


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class ApiSettings:
    """Words API connection settings."""
    base_url: str = os.getenv("API_BASE_URL", "http://localhost:8080/api")
    timeout: float = float(os.getenv("API_TIMEOUT", "10"))


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'wordsbot.db'}")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")


@dataclass
class ReviewSettings:
    """Review and word display settings."""
    max_definitions_per_meaning: int = int(os.getenv("MAX_DEFINITIONS_PER_MEANING", "2"))
    username_min_length: int = int(os.getenv("USERNAME_MIN_LENGTH", "3"))
    username_max_length: int = int(os.getenv("USERNAME_MAX_LENGTH", "20"))
    grade_buttons_per_row: int = GRADE_BUTTONS_PER_ROW
    word_statuses: list[str] = field(default_factory=lambda: list(WORD_STATUSES))


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_api_settings() -> ApiSettings:
    """Get API settings."""
    return ApiSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    api: ApiSettings = field(default_factory=get_api_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.api.base_url:
            raise ValueError("API_BASE_URL is required")

        if self.api.timeout <= 0:
            raise ValueError("API_TIMEOUT must be positive")

        if self.review.max_definitions_per_meaning < 1:
            raise ValueError("MAX_DEFINITIONS_PER_MEANING must be positive")

        if self.review.username_min_length > self.review.username_max_length:
            raise ValueError("USERNAME_MIN_LENGTH cannot be greater than USERNAME_MAX_LENGTH")

    def validate_bot(self) -> None:
        """Validate settings needed to run the Telegram bot."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")


# Create global settings instance
settings = Settings()
settings.validate()
