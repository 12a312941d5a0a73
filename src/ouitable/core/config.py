"""Configuration management for the OUI table generator."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_URL = "https://standards-oui.ieee.org/oui/oui.txt"
DEFAULT_OUTPUT_FILE = "oui.dat"


def _default_storage_root() -> Path:
    cache_home = os.environ.get("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base / "ouitable"


@dataclass
class Config:
    """Main configuration for the OUI table generator."""

    url: str = DEFAULT_URL
    storage_root: Path = field(default_factory=_default_storage_root)
    output_dir: Path = field(default_factory=lambda: Path("./generated-resources/ouitable"))
    output_file: str = DEFAULT_OUTPUT_FILE
    offline: bool = False
    force: bool = False
    timeout: float = 30.0
    verbose: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.storage_root, str):
            self.storage_root = Path(self.storage_root)
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()
        if "url" in data:
            config.url = data["url"]
        if "storage_root" in data:
            config.storage_root = Path(data["storage_root"])
        if "output_dir" in data:
            config.output_dir = Path(data["output_dir"])
        for key in ("output_file", "offline", "force", "timeout", "verbose"):
            if key in data:
                setattr(config, key, data[key])

        return config

    def save(self, path: Path) -> None:
        """Save configuration to JSON file."""
        data = {
            "url": self.url,
            "storage_root": str(self.storage_root),
            "output_dir": str(self.output_dir),
            "output_file": self.output_file,
            "offline": self.offline,
            "force": self.force,
            "timeout": self.timeout,
            "verbose": self.verbose,
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        config_path = Path(os.environ.get("OUITABLE_CONFIG", ".ouitable.json"))
        _config = Config.from_file(config_path)
    return _config


def set_config(config: Config | None) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
