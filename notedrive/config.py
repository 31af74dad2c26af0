"""Configuration management for notedrive.

Settings come from environment variables first and then from a JSON
config file (``~/.config/notedrive/sync-drive-config.json`` by default).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .utils import DEFAULT_SYNC_FOLDER_NAME

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "sync-drive-config.json"
DEFAULT_API_URL = "https://www.googleapis.com"


class Config:
    """Reads and persists notedrive settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                $NOTEDRIVE_CONFIG_DIR or ~/.config/notedrive
        """
        if config_dir is None:
            env_dir = os.environ.get("NOTEDRIVE_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "notedrive"
            )
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def load(self) -> dict[str, Any]:
        """Load the config file.

        Returns:
            Parsed settings, or an empty dict if the file is missing or invalid
        """
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config file {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, **values: Any) -> Path:
        """Merge values into the config file.

        Keys already present in the file and not passed here are kept.

        Returns:
            Path of the written config file
        """
        current = self.load()
        current.update(values)

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(current, f, indent=2)
        # The file holds a bearer token
        os.chmod(path, 0o600)
        logger.debug(f"Saved config to {path}")
        return path

    def save_access_token(self, access_token: str) -> Path:
        """Store an OAuth access token, keeping any other token fields."""
        tokens = self.load().get("tokens") or {}
        tokens["access_token"] = access_token
        return self.save(tokens=tokens)

    @property
    def access_token(self) -> Optional[str]:
        token = os.environ.get("NOTEDRIVE_ACCESS_TOKEN")
        if token:
            return token
        tokens = self.load().get("tokens") or {}
        return tokens.get("access_token")

    @property
    def api_url(self) -> str:
        return (
            os.environ.get("NOTEDRIVE_API_URL")
            or self.load().get("api_url")
            or DEFAULT_API_URL
        )

    @property
    def sync_folder_name(self) -> str:
        return (
            os.environ.get("NOTEDRIVE_SYNC_FOLDER")
            or self.load().get("sync_folder_name")
            or DEFAULT_SYNC_FOLDER_NAME
        )

    @property
    def notes_dir(self) -> Path:
        value = os.environ.get("NOTEDRIVE_NOTES_DIR") or self.load().get("notes_dir")
        if value:
            return Path(value).expanduser()
        return Path.home() / DEFAULT_SYNC_FOLDER_NAME

    def is_configured(self) -> bool:
        """Whether an access token is available."""
        return bool(self.access_token)


config = Config()
