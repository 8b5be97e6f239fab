"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Pipeline
    auto_advance_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("AUTO_ADVANCE_DELAY_SECONDS", "5.0"))
    )
    scheduler_workers: int = field(
        default_factory=lambda: int(os.getenv("SCHEDULER_WORKERS", "4"))
    )
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "USD"))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.auto_advance_delay_seconds < 0:
            raise ValueError("AUTO_ADVANCE_DELAY_SECONDS cannot be negative")
        if self.scheduler_workers < 1:
            raise ValueError("SCHEDULER_WORKERS must be at least 1")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "auto_advance_delay_seconds": self.auto_advance_delay_seconds,
            "scheduler_workers": self.scheduler_workers,
            "currency": self.currency,
        }
