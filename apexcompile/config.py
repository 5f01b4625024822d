"""
Configuration management for apexcompile.

Loads config.yaml from the apexcompile home directory. Every key is
optional; a missing file yields the defaults. Command-line flags override
whatever is loaded here.

config.yaml schema:
    target_org: my-dev-org          # sf alias or username, default org if unset
    api_version: "65.0"
    concurrency: 10                 # members staged per batch
    poll_interval: 2.0              # seconds between request reads
    sf_bin: sf
    project_file: sfdx-project.json
    log_level: INFO
    log_format: pretty              # pretty | structured
    log_file: ~/.config/apexcompile/logs/compile.log
    env_file: ~/.config/apexcompile/.env
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from apexcompile.errors import ConfigError

DEFAULT_API_VERSION = "65.0"
DEFAULT_CONCURRENCY = 10
DEFAULT_POLL_INTERVAL = 2.0

LOG_FORMATS = ("pretty", "structured")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_API_VERSION_RE = re.compile(r"^\d+\.\d+$")


def get_apexcompile_home() -> Path:
    """Get the apexcompile home directory (APEXCOMPILE_HOME or ~/.config/apexcompile)."""
    home = os.environ.get("APEXCOMPILE_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/apexcompile").expanduser()


@dataclass
class CompileConfig:
    """Resolved settings for one compile run."""

    target_org: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    concurrency: int = DEFAULT_CONCURRENCY
    poll_interval: float = DEFAULT_POLL_INTERVAL
    sf_bin: str = "sf"
    project_file: Path = field(default_factory=lambda: Path("sfdx-project.json"))
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[Path] = None
    env_file: Optional[Path] = None

    def __post_init__(self):
        self.project_file = Path(self.project_file).expanduser()
        if self.log_file is not None:
            self.log_file = Path(self.log_file).expanduser()
        if self.env_file is not None:
            self.env_file = Path(self.env_file).expanduser()
        self.log_level = str(self.log_level).upper()

    def validate(self) -> None:
        """Validate configuration values."""
        if not _API_VERSION_RE.match(str(self.api_version)):
            raise ConfigError(f"api_version must look like '65.0', got: {self.api_version!r}")

        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ConfigError(f"concurrency must be a positive integer, got: {self.concurrency!r}")

        if not isinstance(self.poll_interval, (int, float)) or self.poll_interval < 0:
            raise ConfigError(f"poll_interval must be a non-negative number, got: {self.poll_interval!r}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {LOG_FORMATS}, got: {self.log_format!r}")

        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got: {self.log_level!r}")

    def merged(self, **overrides: Any) -> "CompileConfig":
        """Return a copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        merged = CompileConfig(**values)
        merged.validate()
        return merged

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a YAML-friendly dict."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(config_path: Optional[Path] = None) -> CompileConfig:
    """
    Load apexcompile configuration.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml.
            An explicit path must exist; the default path is optional.

    Returns:
        Validated CompileConfig instance

    Raises:
        ConfigError: If config is invalid, has unknown keys, or an explicit
            path is missing
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = get_apexcompile_home() / "config.yaml"

    data: Dict[str, Any] = {}
    if config_path.exists():
        data = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(f"apexcompile config not found: {config_path}")

    known = {f.name for f in fields(CompileConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")

    config = CompileConfig(**data)

    if config.env_file and config.env_file.exists():
        load_dotenv(config.env_file, override=False)

    if not config.target_org:
        config.target_org = os.environ.get("SF_TARGET_ORG") or None

    config.validate()
    return config
