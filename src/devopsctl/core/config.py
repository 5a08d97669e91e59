"""
Configuration loading for devopsctl

Configuration lives in a YAML file (.devopsctl.yaml by default). Missing
files fall back to defaults; sections present in the file are merged over
the defaults key by key.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = (".devopsctl.yaml", ".devopsctl.yml")


@dataclass
class AWSConfig:
    enabled: bool = True
    region: str = "us-east-1"
    profile: str = ""
    key_age_days: int = 90


@dataclass
class DockerConfig:
    enabled: bool = True
    dockerfile_path: str = "Dockerfile"
    image: str = ""


@dataclass
class TerraformConfig:
    enabled: bool = True
    tf_dir: str = "."


@dataclass
class GitConfig:
    enabled: bool = True
    repo_path: str = "."
    repo_size_mb: int = 500
    branch_age_days: int = 90
    large_file_mb: int = 50


@dataclass
class IgnoreConfig:
    checks: List[str] = field(default_factory=list)


@dataclass
class Config:
    aws: AWSConfig = field(default_factory=AWSConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)
    terraform: TerraformConfig = field(default_factory=TerraformConfig)
    git: GitConfig = field(default_factory=GitConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)


def default_config() -> Config:
    return Config()


def _merge_section(section, values: Dict[str, Any], name: str):
    if not isinstance(values, dict):
        raise ConfigError(f"section '{name}' must be a mapping")

    known = {f.name: f for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {name}.{key}")
            continue
        default = getattr(section, key)
        if value is None:
            continue
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{name}.{key} must be a boolean")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name}.{key} must be an integer")
        elif isinstance(default, list):
            if not isinstance(value, list):
                raise ConfigError(f"{name}.{key} must be a list")
            value = [str(v) for v in value]
        else:
            value = str(value)
        setattr(section, key, value)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Build a Config from a parsed YAML mapping"""
    cfg = default_config()
    for name, values in (data or {}).items():
        if not hasattr(cfg, name):
            logger.warning(f"Ignoring unknown config section: {name}")
            continue
        _merge_section(getattr(cfg, name), values, name)
    return cfg


def load_config(path) -> Config:
    """Read and parse a YAML config file; defaults when it does not exist"""
    config_path = Path(path)
    if not config_path.exists():
        logger.debug(f"Config file {config_path} not found, using defaults")
        return default_config()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read {config_path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"cannot decode {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

    if data is None:
        return default_config()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    return config_from_dict(data)


def find_config_file(directory: Optional[Path] = None) -> Optional[Path]:
    """Look for .devopsctl.yaml / .devopsctl.yml in the given directory"""
    base = Path(directory) if directory is not None else Path.cwd()
    for candidate in CONFIG_CANDIDATES:
        path = base / candidate
        if path.is_file():
            return path
    return None
