"""
Storage manager for okrtree.

Handles loading and saving of the JSON files in the local state directory.
Objectives and tasks live in the remote store; only the session and the
configuration are kept on disk.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from okrtree.constants import get_state_dir
from okrtree.exceptions import StorageError
from okrtree.models.files import ConfigFile, SessionFile

SESSION_FILE = "session.json"
CONFIG_FILE = "config.json"


class StorageManager:
    """
    Manages persistence of local state to JSON files.

    Handles atomic writes to prevent data corruption.
    """

    def __init__(self, state_dir: Optional[Path] = None) -> None:
        """
        Initialize the StorageManager with a state directory path.

        Args:
            state_dir: Path to the state directory. Defaults to ~/.okrtree
                (or $OKRTREE_HOME).
        """
        self.state_dir = state_dir if state_dir else get_state_dir()

    def _ensure_state_dir(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically.

        Raises:
            StorageError: If writing to file fails.
        """
        self._ensure_state_dir()
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.state_dir, prefix=".tmp_okrtree_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except Exception as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    def _read(self, file_path: Path) -> Optional[Any]:
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to load {file_path.name}: {e}")

    # =========================================================================
    # Session File
    # =========================================================================

    @property
    def session_path(self) -> Path:
        return self.state_dir / SESSION_FILE

    def load_session(self) -> SessionFile:
        """Load session.json, or an empty session if there is none."""
        data = self._read(self.session_path)
        if data is None:
            return SessionFile()
        try:
            return SessionFile.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load {SESSION_FILE}: {e}")

    def save_session(self, session: SessionFile) -> None:
        self._atomic_write(self.session_path, session.model_dump(mode="json", by_alias=True))

    def clear_session(self) -> None:
        """Remove session.json. Missing file is not an error."""
        try:
            self.session_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove {SESSION_FILE}: {e}")

    # =========================================================================
    # Config File
    # =========================================================================

    @property
    def config_path(self) -> Path:
        return self.state_dir / CONFIG_FILE

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        data = self._read(self.config_path)
        if data is None:
            return ConfigFile()
        try:
            return ConfigFile.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load {CONFIG_FILE}: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        self._atomic_write(self.config_path, data.model_dump(mode="json"))
