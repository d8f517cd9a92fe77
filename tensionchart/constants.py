"""
Constants for the tensionchart application.

Note: These constants serve as default fallback values.
Actual values are loaded from <data_dir>/config.json at runtime via ConfigManager.
"""
from pathlib import Path
from typing import Any, Optional
import json

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

DEFAULT_DATA_DIR = ".tensionchart"

# Chart used when none is named
DEFAULT_CHART_ID = "main"

# Deletion grace window (seconds) before a delete is committed
DEFAULT_GRACE_SECONDS = 15.0

# Whether Area moves cascade onto child actions and child-chart visions
DEFAULT_CASCADE_AREA_MOVES = True

# Whether persistence calls of one mutation are issued concurrently
DEFAULT_PERSIST_IN_PARALLEL = False

# Dated items sort ascending by due date unless configured otherwise
DEFAULT_DATED_SORT_DESCENDING = False

# Prefix for optimistic local identifiers
DEFAULT_TEMP_ID_PREFIX = "temp-"

# How long a captured scroll position stays valid
DEFAULT_SCROLL_RESTORE_SECONDS = 10.0

# Notification display durations
DEFAULT_SUCCESS_NOTICE_SECONDS = 3
DEFAULT_ERROR_NOTICE_SECONDS = 5

# Partition sentinels (not configurable)
UNCATEGORIZED = "uncategorized"
LOOSE = "loose"
DATED = "dated"
UNDATED = "undated"

# User-facing messages (not configurable)
MESSAGE_MOVE_FAILED = "Move failed. The change was reverted."
MESSAGE_ORDER_FAILED = "Order update failed. The change was reverted."
MESSAGE_DELETE_FAILED = "Delete failed. The item was restored."
MESSAGE_CREATE_FAILED = "Could not save the new item."
MESSAGE_UPDATE_FAILED = "Update failed. The change was reverted."
MESSAGE_UNTAGGED = "Uncategorized"


# =============================================================================
# Config Loader
# Load values from <data_dir>/config.json at runtime.
# =============================================================================

_config_manager_instance: Optional['ConfigManager'] = None


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    This class is independent of ChartStorage to avoid cyclic dependencies.
    ChartStorage handles persistence; ConfigManager handles runtime access.

    Usage:
        # With default path (.tensionchart/config.json)
        config = ConfigManager()
        grace = config.get_float('grace_seconds', DEFAULT_GRACE_SECONDS)

        # With custom path
        config = ConfigManager(config_path=Path("/custom/path/config.json"))
    """

    def __init__(self, config_path: Optional[Path] = None, data_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over data_dir.
            data_dir: Path to the data directory. Config path will be data_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif data_dir is not None:
            self._config_path = data_dir / "config.json"
        else:
            self._config_path = Path(DEFAULT_DATA_DIR) / "config.json"

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

    def get_bool(self, key: str, default: bool) -> bool:
        """Get a boolean config value with fallback."""
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value) if value is not None else default

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


def get_config_manager(reset: bool = False, data_dir: Optional[Path] = None) -> ConfigManager:
    """
    Get the singleton ConfigManager instance.

    Args:
        reset: If True, reset the singleton and create a new instance.
        data_dir: Data directory to read config.json from when (re)creating.

    Returns:
        ConfigManager singleton instance.
    """
    global _config_manager_instance
    if _config_manager_instance is None or reset:
        _config_manager_instance = ConfigManager(data_dir=data_dir)
    return _config_manager_instance


def reset_config_manager() -> None:
    """Reset the singleton ConfigManager instance (useful for testing)."""
    global _config_manager_instance
    _config_manager_instance = None


# Convenience functions for common config access
def get_grace_seconds() -> float:
    """Get the deletion grace window from config or default."""
    return get_config_manager().get_float('grace_seconds', DEFAULT_GRACE_SECONDS)


def get_cascade_area_moves() -> bool:
    """Get whether Area moves cascade from config or default."""
    return get_config_manager().get_bool('cascade_area_moves', DEFAULT_CASCADE_AREA_MOVES)


def get_persist_in_parallel() -> bool:
    """Get whether persistence calls run concurrently from config or default."""
    return get_config_manager().get_bool('persist_in_parallel', DEFAULT_PERSIST_IN_PARALLEL)


def get_dated_sort_descending() -> bool:
    """Get dated-bucket sort direction from config or default."""
    return get_config_manager().get_bool('dated_sort_descending', DEFAULT_DATED_SORT_DESCENDING)


def get_temp_id_prefix() -> str:
    """Get the temporary id prefix from config or default."""
    return get_config_manager().get_str('temp_id_prefix', DEFAULT_TEMP_ID_PREFIX)


def get_scroll_restore_seconds() -> float:
    """Get the scroll restore validity window from config or default."""
    return get_config_manager().get_float('scroll_restore_seconds', DEFAULT_SCROLL_RESTORE_SECONDS)


def get_success_notice_seconds() -> int:
    """Get success notice duration from config or default."""
    return get_config_manager().get_int('success_notice_seconds', DEFAULT_SUCCESS_NOTICE_SECONDS)


def get_error_notice_seconds() -> int:
    """Get error notice duration from config or default."""
    return get_config_manager().get_int('error_notice_seconds', DEFAULT_ERROR_NOTICE_SECONDS)
