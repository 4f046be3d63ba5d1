"""
Constants for the okrtree application.

Note: These constants serve as default fallback values.
Actual values are loaded from ~/.okrtree/config.json at runtime via ConfigManager.
"""
import json
import os
from pathlib import Path
from typing import Any, Optional

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

DEFAULT_STATE_DIR = Path.home() / ".okrtree"
STATE_DIR_ENV_VAR = "OKRTREE_HOME"
API_BASE_URL_ENV_VAR = "OKRTREE_API_BASE_URL"

# Remote store defaults
DEFAULT_API_BASE_URL = "http://localhost:8080/api"
DEFAULT_REQUEST_TIMEOUT = 30.0

# Tree shaping defaults
DEFAULT_MAX_TREE_DEPTH = 64

# Degraded-mode root tree requested when the root list endpoint fails.
# Set to null in config.json to disable the fallback.
DEFAULT_FALLBACK_ROOT_ID = 1

DEFAULT_LOG_LEVEL = "WARNING"

# Progress bounds (not configurable)
MIN_PROGRESS = 0
MAX_PROGRESS = 100

# Objective levels and their display labels (not configurable)
LEVEL_LABELS = {
    "COMPANY": "Company Level",
    "DEPARTMENT": "Department Level",
    "TEAMS": "Team Level",
    "INDIVIDUALS": "Individual Level",
}
UNKNOWN_LEVEL_LABEL = "Unknown Level"

# User-facing messages (not configurable)
MSG_ROOTS_FAILED = "Failed to load OKR trees. Please try again later."
MSG_TREE_FAILED = "Failed to load OKR tree. Please try again."
MSG_NO_TREES = (
    "There are no objective trees available. "
    "Create your first root objective to get started."
)
MSG_OBJECTIVE_CREATED = "Objective created successfully"
MSG_SUB_OBJECTIVE_CREATED = "Sub-objective created successfully"
MSG_OBJECTIVE_UPDATED = "Objective updated successfully"
MSG_OBJECTIVE_SAVE_FAILED = "Failed to save objective. Please try again."
MSG_OBJECTIVE_DELETED = "Objective deleted successfully"
MSG_OBJECTIVE_DELETE_FAILED = "Failed to delete objective. Please try again."
MSG_TASK_CREATED = "Task created successfully"
MSG_TASK_UPDATED = "Task updated successfully"
MSG_TASK_SAVE_FAILED = "Failed to save task. Please try again."
MSG_TASKS_FAILED = "Failed to load tasks. Please try again."
MSG_PROGRESS_UPDATED = "Task progress updated successfully"
MSG_PROGRESS_FAILED = "Failed to update task progress. Please try again."
MSG_TASK_DELETED = "Task deleted successfully"
MSG_TASK_DELETE_FAILED = "Failed to delete task. Please try again."

WARN_OBJECTIVE_CASCADE = (
    "This will permanently delete this objective, all of its sub-objectives, "
    "and associated tasks. This action cannot be undone."
)
WARN_TASK_DELETE = "This will permanently delete this task. This action cannot be undone."

NOT_ASSIGNED_LABEL = "Not assigned"

# Notice levels emitted to whoever renders user-facing messages
NOTICE_SUCCESS = "success"
NOTICE_ERROR = "error"
NOTICE_WARNING = "warning"

# Date formats accepted for task due dates
DEFAULT_DATE_FORMATS = [
    "%Y-%m-%d",      # YYYY-MM-DD (ISO 8601)
    "%Y/%m/%d",      # YYYY/MM/DD
    "%d-%m-%Y",      # DD-MM-YYYY
    "%d/%m/%Y",      # DD/MM/YYYY
    "%Y%m%d",        # YYYYMMDD
    "%d %B %Y",      # DD Month YYYY (e.g., 31 December 2024)
    "%B %d, %Y",     # Month DD, YYYY (e.g., December 31, 2024)
]
DATE_FORMAT_ERROR = (
    "Invalid date format. Supported formats: YYYY-MM-DD, YYYY/MM/DD, DD-MM-YYYY, "
    "DD/MM/YYYY, YYYYMMDD, 'DD Month YYYY', 'Month DD, YYYY'."
)


# =============================================================================
# Config Loader
# Load values from config.json at runtime.
# =============================================================================

_config_manager_instance: Optional['ConfigManager'] = None


def get_state_dir() -> Path:
    """Return the local state directory, honouring OKRTREE_HOME."""
    override = os.environ.get(STATE_DIR_ENV_VAR)
    return Path(override) if override else DEFAULT_STATE_DIR


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    This class is independent of StorageManager to avoid cyclic dependencies.
    StorageManager handles persistence; ConfigManager handles runtime access.

    Usage:
        config = ConfigManager()
        timeout = config.get_float('request_timeout', DEFAULT_REQUEST_TIMEOUT)

        config = ConfigManager(config_path=Path("/custom/path/config.json"))
        depth = config.get_int('max_tree_depth', DEFAULT_MAX_TREE_DEPTH)
    """

    def __init__(self, config_path: Optional[Path] = None, state_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over state_dir.
            state_dir: Path to the state directory. Config path will be state_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif state_dir is not None:
            self._config_path = state_dir / "config.json"
        else:
            self._config_path = get_state_dir() / "config.json"

    def _load_config(self) -> dict:
        """Load config from config.json file."""
        if self._config is not None:
            return self._config

        if self._config_path.exists():
            try:
                with open(self._config_path, "r") as f:
                    self._config = json.load(f)
            except (json.JSONDecodeError, IOError):
                self._config = {}
        else:
            self._config = {}

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value with fallback to default.

        Args:
            key: Configuration key name.
            default: Default value if key not found.

        Returns:
            Config value or default.
        """
        config = self._load_config()
        return config.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        """Get an integer config value with fallback."""
        value = self.get(key, default)
        return int(value) if value is not None else default

    def get_float(self, key: str, default: float) -> float:
        """Get a float config value with fallback."""
        value = self.get(key, default)
        return float(value) if value is not None else default

    def get_str(self, key: str, default: str) -> str:
        """Get a string config value with fallback."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def reload(self) -> dict:
        """Force reload of config from disk."""
        self._config = None
        return self._load_config()

    @property
    def config_path(self) -> Path:
        """Get the config file path."""
        return self._config_path


def get_config_manager(reset: bool = False) -> ConfigManager:
    """
    Get the singleton ConfigManager instance with default path.

    Args:
        reset: If True, reset the singleton and create a new instance.

    Returns:
        ConfigManager singleton instance.
    """
    global _config_manager_instance
    if _config_manager_instance is None or reset:
        _config_manager_instance = ConfigManager()
    return _config_manager_instance


def reset_config_manager() -> None:
    """Reset the singleton ConfigManager instance (useful for testing)."""
    global _config_manager_instance
    _config_manager_instance = None


# Convenience functions for common config access
def get_api_base_url() -> str:
    """Get the API base URL from the environment, config or default."""
    env_value = os.environ.get(API_BASE_URL_ENV_VAR)
    if env_value:
        return env_value
    return get_config_manager().get_str('api_base_url', DEFAULT_API_BASE_URL)


def get_request_timeout() -> float:
    """Get the HTTP request timeout in seconds from config or default."""
    return get_config_manager().get_float('request_timeout', DEFAULT_REQUEST_TIMEOUT)


def get_max_tree_depth() -> int:
    """Get the tree shaping depth guard from config or default."""
    return get_config_manager().get_int('max_tree_depth', DEFAULT_MAX_TREE_DEPTH)


def get_fallback_root_id() -> Any:
    """Get the degraded-mode root id, or None when the fallback is disabled."""
    return get_config_manager().get('fallback_root_id', DEFAULT_FALLBACK_ROOT_ID)


def get_log_level() -> str:
    """Get the log level name from config or default."""
    return get_config_manager().get_str('log_level', DEFAULT_LOG_LEVEL)
