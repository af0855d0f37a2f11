"""
Configuration loader for storage-bench runs.

Supports:
- YAML config loading with validation
- Environment variable substitution (``${VAR}`` and ``${VAR:-default}``)
- Default config when no file is given
- Per-backend default storage paths under one data directory
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..common.errors import ConfigError

DEFAULT_DATASET_URL = "https://api.example.com/items"
DEFAULT_DATA_DIR = ".storage_bench"
DEFAULT_BACKENDS: tuple[str, ...] = (
    "sqlite_batch",
    "sqlalchemy_core",
    "kvault_store",
    "zodb_store",
)

# Storage location option per built-in backend, relative to the data dir.
DEFAULT_STORAGE_PATHS: dict[str, str] = {
    "sqlite_batch": "sqlite_batch.db",
    "sqlalchemy_core": "sqlalchemy_core.db",
    "kvault_store": "kvault_store.db",
    "zodb_store": "zodb_store.fs",
}

_ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


@dataclass
class DatasetConfig:
    """Where records come from."""

    url: str = DEFAULT_DATASET_URL
    timeout_s: float = 30.0
    synthetic_count: int = 1000
    seed: int = 42


@dataclass
class StorageConfig:
    """Storage location shared by all backends."""

    data_dir: str = DEFAULT_DATA_DIR


@dataclass
class BackendConfig:
    """One backend entry."""

    name: str
    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)

    def resolve_options(self, data_dir: str | Path) -> dict[str, Any]:
        """Return constructor options with the default storage path filled in."""
        options = dict(self.options)
        default_path = DEFAULT_STORAGE_PATHS.get(self.name)
        if default_path is not None and "path" not in options and "url" not in options:
            options["path"] = str(Path(data_dir) / default_path)
        return options


@dataclass
class OutputConfig:
    """Output configuration."""

    plot_path: str | None = None


@dataclass
class BenchConfig:
    """Complete run configuration."""

    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    backends: list[BackendConfig] = field(
        default_factory=lambda: [BackendConfig(name=name) for name in DEFAULT_BACKENDS]
    )
    output: OutputConfig = field(default_factory=OutputConfig)

    def enabled_backends(self) -> list[BackendConfig]:
        return [b for b in self.backends if b.enabled]

    def backend(self, name: str) -> BackendConfig:
        for b in self.backends:
            if b.name == name:
                return b
        return BackendConfig(name=name)


class ConfigLoader:
    """Configuration loader with validation and defaults."""

    def __init__(self):
        self.config_dir = Path(__file__).parent

    def load(self, path: str) -> BenchConfig:
        """Load configuration from a YAML file.

        Relative paths are tried against the working directory first and the
        bundled config directory second.
        """
        config_path = Path(path)
        if not config_path.is_absolute() and not config_path.exists():
            config_path = self.config_dir / config_path

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            try:
                raw_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Top level of {config_path} must be a mapping")

        raw_config = self._substitute_env_vars(raw_config)
        return self._parse_config(raw_config)

    def get_default_config(self) -> BenchConfig:
        """Default configuration: the bundled ``default.yaml``."""
        return self.load(str(self.config_dir / "default.yaml"))

    def _substitute_env_vars(self, obj: Any) -> Any:
        """Recursively substitute ${VAR} with environment variables."""
        if isinstance(obj, str):

            def replacer(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return _ENV_PATTERN.sub(replacer, obj)
        elif isinstance(obj, dict):
            return {k: self._substitute_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._substitute_env_vars(item) for item in obj]
        return obj

    def _parse_config(self, raw: dict) -> BenchConfig:
        """Parse raw config dict into BenchConfig."""
        # Dataset
        ds_raw = raw.get("dataset") or {}
        try:
            dataset = DatasetConfig(
                url=str(ds_raw.get("url", DEFAULT_DATASET_URL) or ""),
                timeout_s=float(ds_raw.get("timeout_s", 30.0)),
                synthetic_count=int(ds_raw.get("synthetic_count", 1000)),
                seed=int(ds_raw.get("seed", 42)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid dataset section: {e}") from e

        # Storage
        storage_raw = raw.get("storage") or {}
        storage = StorageConfig(data_dir=str(storage_raw.get("data_dir", DEFAULT_DATA_DIR)))

        # Backends
        if "backends" in raw:
            backends = [self._parse_backend(entry) for entry in raw.get("backends") or []]
        else:
            backends = [BackendConfig(name=name) for name in DEFAULT_BACKENDS]

        # Output
        output_raw = raw.get("output") or {}
        output = OutputConfig(plot_path=output_raw.get("plot_path"))

        config = BenchConfig(dataset=dataset, storage=storage, backends=backends, output=output)
        self.validate(config)
        return config

    def _parse_backend(self, entry: Any) -> BackendConfig:
        if isinstance(entry, str):
            return BackendConfig(name=entry.lower())
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ConfigError(f"Backend entries need a 'name'; got {entry!r}")
        options = entry.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigError(f"Options of backend '{entry['name']}' must be a mapping")
        return BackendConfig(
            name=str(entry["name"]).lower(),
            enabled=bool(entry.get("enabled", True)),
            options=options,
        )

    def validate(self, config: BenchConfig) -> bool:
        """Validate configuration values."""
        if config.dataset.timeout_s <= 0:
            raise ConfigError("dataset.timeout_s must be positive")
        if config.dataset.synthetic_count < 0:
            raise ConfigError("dataset.synthetic_count must be non-negative")
        if config.dataset.seed < 0:
            raise ConfigError("dataset.seed must be non-negative")
        names = [b.name for b in config.backends]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate backend entries: {', '.join(duplicates)}")
        return True
