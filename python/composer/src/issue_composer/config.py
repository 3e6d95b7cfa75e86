"""Issue composer configuration loader."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class PickerConfig:
    """Directories the file pickers read from."""

    library_dir: str = "~/Pictures"
    camera_dir: str = "~/Pictures/Camera"


@dataclass
class ComposerConfig:
    """Main configuration for the issue composer."""

    backend_url: str = "http://localhost:8080"
    token: str | None = None

    # Key-value file that survives restarts (draft id, last project id)
    storage_path: str = ".composer/storage.json"

    request_timeout: float = 30.0

    pickers: PickerConfig = field(default_factory=PickerConfig)

    @classmethod
    def load(cls, config_path: str = ".composer/config.yaml") -> "ComposerConfig":
        """Load config from YAML file.

        Args:
            config_path: Path to config file (relative or absolute)

        Returns:
            Loaded configuration. A missing file yields defaults; the
            ``YOUTRACK_TOKEN`` environment variable overrides the token.
        """
        path = Path(config_path)
        data: dict = {}
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

        pickers_data = data.get("pickers", {}) or {}
        pickers = PickerConfig(
            library_dir=pickers_data.get("library_dir", "~/Pictures"),
            camera_dir=pickers_data.get("camera_dir", "~/Pictures/Camera"),
        )

        return cls(
            backend_url=data.get("backend_url", "http://localhost:8080"),
            token=os.environ.get("YOUTRACK_TOKEN") or data.get("token"),
            storage_path=data.get("storage_path", ".composer/storage.json"),
            request_timeout=float(data.get("request_timeout", 30.0)),
            pickers=pickers,
        )
