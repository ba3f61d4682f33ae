"""
Backend Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from feedrank.models.config import FeedConfig

# Single .env at the project root
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)

CONTENT_STORES = ("memory", "firestore")


@dataclass
class BackendConfig:
    """Backend configuration."""

    # "memory" | "firestore"
    content_store: str = "memory"
    # When content_store=memory: optional JSON dataset to seed the store
    dataset_path: Optional[Path] = None
    # When content_store=firestore: service account JSON and optional project id
    firebase_credentials_path: Optional[Path] = None
    firebase_project_id: Optional[str] = None
    # Optional JSON file with FeedConfig overrides
    feed_config_path: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BackendConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent

        def _path_env(key: str) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return None
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        return cls(
            content_store=os.getenv("CONTENT_STORE", "memory").strip().lower() or "memory",
            dataset_path=_path_env("DATASET_PATH"),
            firebase_credentials_path=_path_env("FIREBASE_CREDENTIALS_PATH") or _path_env("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or None,
            feed_config_path=_path_env("FEED_CONFIG_PATH"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if self.content_store not in CONTENT_STORES:
            errors.append(f"Unknown CONTENT_STORE {self.content_store!r}; expected one of {CONTENT_STORES}")

        if self.content_store == "firestore":
            if not self.firebase_credentials_path:
                errors.append("CONTENT_STORE=firestore requires FIREBASE_CREDENTIALS_PATH")
            elif not self.firebase_credentials_path.is_file():
                errors.append(f"Firebase credentials file not found: {self.firebase_credentials_path}")

        if self.dataset_path and not self.dataset_path.exists():
            errors.append(f"Dataset not found: {self.dataset_path}")

        if self.feed_config_path and not self.feed_config_path.exists():
            errors.append(f"Feed config not found: {self.feed_config_path}")

        return len(errors) == 0, errors

    def load_feed_config(self) -> FeedConfig:
        """FeedConfig from feed_config_path merged over defaults, or defaults."""
        if not self.feed_config_path:
            return FeedConfig()
        with open(self.feed_config_path) as f:
            return FeedConfig.from_dict(json.load(f))


# Global config instance
_config: Optional[BackendConfig] = None


def get_config() -> BackendConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = BackendConfig.from_env()
    return _config


def reload_config() -> BackendConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
