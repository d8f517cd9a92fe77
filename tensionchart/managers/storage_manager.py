"""
Storage manager for tensionchart.

Handles loading and saving of the JSON files in the .tensionchart/ directory:
one charts/<chart_id>.json per chart plus config.json.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from tensionchart.constants import DEFAULT_DATA_DIR
from tensionchart.exceptions import StorageError
from tensionchart.models.files import ChartFile, ConfigFile


class ChartStorage:
    """
    Manages persistence of charts to JSON files in the data directory.

    Handles atomic writes to prevent data corruption.
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        """
        Initialize the ChartStorage with a data directory path.

        Args:
            data_dir: Path to the data directory. Defaults to .tensionchart/ in current directory.
        """
        self.data_dir = Path(data_dir) if data_dir else Path(DEFAULT_DATA_DIR)
        self.charts_dir = self.data_dir / "charts"
        self._ensure_data_dir()

    def _ensure_data_dir(self) -> None:
        """Create the data directory and charts subdirectory if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.charts_dir.mkdir(exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically to prevent corruption.

        Args:
            file_path: Path to the file to write.
            data: Dictionary data to write as JSON.

        Raises:
            StorageError: If writing to file fails.
        """
        temp_path = None
        try:
            temp_fd, temp_path = tempfile.mkstemp(
                dir=file_path.parent, prefix=".tmp_tchart_", suffix=".json"
            )
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except Exception as e:
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    # =========================================================================
    # Chart Files
    # =========================================================================

    def chart_path(self, chart_id: str) -> Path:
        return self.charts_dir / f"{chart_id}.json"

    def chart_exists(self, chart_id: str) -> bool:
        return self.chart_path(chart_id).exists()

    def list_charts(self) -> List[str]:
        """Ids of every stored chart, sorted."""
        return sorted(path.stem for path in self.charts_dir.glob("*.json"))

    def load_chart(self, chart_id: str) -> ChartFile:
        """Load charts/<chart_id>.json; a missing chart loads as an empty one."""
        file_path = self.chart_path(chart_id)
        if not file_path.exists():
            return ChartFile.empty(chart_id)

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
            chart = ChartFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load chart '{chart_id}': {e}")

        if chart.store.chart_id != chart_id:
            raise StorageError(
                f"Chart file '{file_path.name}' holds chart '{chart.store.chart_id}'"
            )
        return chart

    def save_chart(self, chart: ChartFile) -> None:
        """Save a ChartFile model to charts/<chart_id>.json."""
        file_path = self.chart_path(chart.store.chart_id)
        self._atomic_write(file_path, chart.model_dump(mode="json"))

    # =========================================================================
    # Config File
    # =========================================================================

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        file_path = self.data_dir / "config.json"
        if not file_path.exists():
            return ConfigFile()

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
            return ConfigFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        file_path = self.data_dir / "config.json"
        self._atomic_write(file_path, data.model_dump(mode="json"))
