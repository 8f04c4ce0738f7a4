"""
Configuration management for the judging service.
"""
import os
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class PortalConfig:
    """Portal data API configuration."""
    token: Optional[str]
    base_url: str = "http://localhost:3000/api/data"
    timeout: int = 30
    max_retries: int = 3
    rate_limit_delay: float = 1.0


@dataclass
class ConsensusConfig:
    """Conflict thresholds applied to the standard deviation of ranks."""
    high_conflict_threshold: float = 3.0
    medium_conflict_threshold: float = 1.5
    lenient_conflict_threshold: float = 2.0


class ConfigManager:
    """Manages application configuration."""

    def __init__(self):
        self.portal = self._load_portal_config()
        self.consensus = self._load_consensus_config()

    def _load_portal_config(self) -> PortalConfig:
        """Load portal configuration from environment."""
        return PortalConfig(
            token=os.getenv("PORTAL_API_TOKEN"),
            base_url=os.getenv("PORTAL_BASE_URL", "http://localhost:3000/api/data"),
            timeout=int(os.getenv("PORTAL_TIMEOUT", "30")),
            max_retries=int(os.getenv("PORTAL_MAX_RETRIES", "3")),
            rate_limit_delay=float(os.getenv("PORTAL_RATE_LIMIT_DELAY", "1.0"))
        )

    def _load_consensus_config(self) -> ConsensusConfig:
        """Load conflict thresholds from environment."""
        return ConsensusConfig(
            high_conflict_threshold=float(os.getenv("HIGH_CONFLICT_THRESHOLD", "3.0")),
            medium_conflict_threshold=float(os.getenv("MEDIUM_CONFLICT_THRESHOLD", "1.5")),
            lenient_conflict_threshold=float(os.getenv("LENIENT_CONFLICT_THRESHOLD", "2.0"))
        )

    def validate(self, require_portal: bool = False) -> list:
        """Validate configuration and return any errors."""
        errors = []

        if require_portal and not self.portal.token:
            errors.append("PORTAL_API_TOKEN environment variable is required for portal access")

        if self.portal.timeout <= 0:
            errors.append("Portal timeout must be positive")

        if self.consensus.medium_conflict_threshold <= 0:
            errors.append("Medium conflict threshold must be positive")

        if self.consensus.high_conflict_threshold <= self.consensus.medium_conflict_threshold:
            errors.append("High conflict threshold must be greater than medium conflict threshold")

        if self.consensus.lenient_conflict_threshold <= 0:
            errors.append("Lenient conflict threshold must be positive")

        return errors


config = ConfigManager()
