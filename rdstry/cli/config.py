"""Configuration loading for the rdstry CLI.

Settings come from a YAML file (default ``~/.rdstry/config.yaml`` or
``$RDSTRY_CONFIG``), then environment variables, then command-line options.

Example::

    aws_profile: analytics
    region: ap-northeast-1
    log_level: INFO
    rds:
      user: admin
      password: secret
      instance_class: db.t3.medium
      multi_az: false
    out:
      file: true
      root: ~/rdstry-results
      bom: false
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..clone.orchestrator import DEFAULT_INSTANCE_CLASS
from ..errors import ConfigError
from ..models.query import ExportConfig

DEFAULT_CONFIG_PATH = Path.home() / ".rdstry" / "config.yaml"


@dataclass
class RDSConfig:
    """Clone creation and database login settings."""

    user: str = ""
    password: str = ""
    instance_class: str = DEFAULT_INSTANCE_CLASS
    multi_az: bool = False


@dataclass
class Config:
    """rdstry configuration."""

    aws_profile: Optional[str] = None
    region: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    rds: RDSConfig = field(default_factory=RDSConfig)
    out: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        A missing default file yields the defaults; an explicitly given file
        that does not exist is an error.

        Args:
            path: Config file path (default: $RDSTRY_CONFIG or ~/.rdstry/config.yaml)

        Raises:
            ConfigError: If the file is missing (when given explicitly) or invalid
        """
        explicit = path or os.environ.get("RDSTRY_CONFIG")
        config_path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH

        data: Dict[str, Any] = {}
        if config_path.is_file():
            try:
                data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in config file {config_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {config_path} must contain a mapping")
        elif explicit:
            raise ConfigError(f"Config file not found: {config_path}")

        config = cls.from_dict(data)
        config.apply_environment(os.environ)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        rds = data.get("rds") or {}
        out = data.get("out") or {}

        return cls(
            aws_profile=data.get("aws_profile"),
            region=data.get("region"),
            log_level=str(data.get("log_level", "INFO")).upper(),
            log_file=data.get("log_file"),
            rds=RDSConfig(
                user=str(rds.get("user", "")),
                password=str(rds.get("password", "")),
                instance_class=rds.get("instance_class", DEFAULT_INSTANCE_CLASS),
                multi_az=bool(rds.get("multi_az", False)),
            ),
            out=ExportConfig(
                enabled=bool(out.get("file", True)),
                root=str(Path(out["root"]).expanduser()) if out.get("root") else None,
                bom=bool(out.get("bom", False)),
            ),
        )

    def apply_environment(self, environ: Any) -> None:
        """Override file settings with environment variables."""
        if environ.get("AWS_PROFILE"):
            self.aws_profile = environ["AWS_PROFILE"]
        if environ.get("AWS_DEFAULT_REGION"):
            self.region = environ["AWS_DEFAULT_REGION"]
        if environ.get("RDSTRY_DB_USER"):
            self.rds.user = environ["RDSTRY_DB_USER"]
        if environ.get("RDSTRY_DB_PASSWORD"):
            self.rds.password = environ["RDSTRY_DB_PASSWORD"]
        if environ.get("RDSTRY_LOG_LEVEL"):
            self.log_level = environ["RDSTRY_LOG_LEVEL"].upper()
