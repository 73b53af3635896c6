"""Configuration dataclasses and YAML loading for the runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .request import DEFAULT_PARAMS, DefaultParam, DefaultParamExclusion
from .transport import ApiEndpoint, TransportConfig

# Looked up in the working directory when no --config is given
DEFAULT_CONFIG_FILES = ("restchain.yml", "restchain.yaml")


@dataclass
class RunnerConfig:
    """Complete runner configuration."""

    transport: TransportConfig = field(default_factory=TransportConfig)
    default_params: List[DefaultParam] = field(
        default_factory=lambda: list(DEFAULT_PARAMS)
    )
    apis: Dict[str, ApiEndpoint] = field(default_factory=dict)
    verbose: bool = False


def _parse_default_param(data: Dict[str, Any], source: Optional[str]) -> DefaultParam:
    """Parse one default_params entry.

    Example:
        name: error_trace
        value: "true"
        exclude:
          - api_suffix: put_settings
            before_version: 5.2.0
    """
    if not isinstance(data, dict) or "name" not in data or "value" not in data:
        raise ConfigError("default_params entries need 'name' and 'value'", source)

    exclusions: List[DefaultParamExclusion] = []
    for rule in data.get("exclude") or []:
        if not isinstance(rule, dict) or "api_suffix" not in rule:
            raise ConfigError("default_params exclusions need 'api_suffix'", source)
        before = rule.get("before_version")
        exclusions.append(
            DefaultParamExclusion(
                api_suffix=str(rule["api_suffix"]),
                before_version=str(before) if before is not None else None,
            )
        )

    value = data["value"]
    if isinstance(value, bool):
        value = "true" if value else "false"

    return DefaultParam(name=str(data["name"]), value=str(value), exclude=exclusions)


def _parse_api(name: str, data: Dict[str, Any], source: Optional[str]) -> ApiEndpoint:
    if not isinstance(data, dict) or "method" not in data:
        raise ConfigError(f"api '{name}' needs a 'method'", source)

    paths = data.get("paths", data.get("path"))
    if isinstance(paths, str):
        paths = [paths]
    if not paths:
        raise ConfigError(f"api '{name}' needs 'paths'", source)

    return ApiEndpoint(method=str(data["method"]).upper(), paths=list(paths))


def parse_config(data: Optional[Dict[str, Any]], source: Optional[str] = None) -> RunnerConfig:
    """Build a RunnerConfig from already loaded YAML data.

    Args:
        data: Mapping loaded from YAML, or None for defaults
        source: File name used in error messages

    Raises:
        ConfigError: If the data is malformed
    """
    if data is None:
        return RunnerConfig()
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary", source)

    headers = data.get("headers") or {}
    version = data.get("version")
    transport = TransportConfig(
        host=data.get("host", "http://localhost:9200"),
        timeout=float(data.get("timeout", 30.0)),
        version=str(version) if version is not None else None,
        headers={str(k): str(v) for k, v in headers.items()},
    )

    if "default_params" in data:
        default_params = [
            _parse_default_param(entry, source) for entry in data["default_params"] or []
        ]
    else:
        default_params = list(DEFAULT_PARAMS)

    apis = {
        name: _parse_api(name, api_data, source)
        for name, api_data in (data.get("apis") or {}).items()
    }

    return RunnerConfig(
        transport=transport,
        default_params=default_params,
        apis=apis,
        verbose=bool(data.get("verbose", False)),
    )


def load_config(config_file: Optional[Path] = None, cwd: Optional[Path] = None) -> RunnerConfig:
    """Load runner configuration from YAML.

    Args:
        config_file: Explicit configuration file. Must exist when given.
        cwd: Directory searched for restchain.yml when config_file is None

    Returns:
        Parsed configuration, or defaults when no file is found
    """
    if config_file is None:
        base = cwd or Path.cwd()
        for candidate in DEFAULT_CONFIG_FILES:
            if (base / candidate).exists():
                config_file = base / candidate
                break
        else:
            return RunnerConfig()

    if not config_file.exists():
        raise ConfigError(f"Configuration file not found at:\n  {config_file}")

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", str(config_file)) from e

    return parse_config(data, str(config_file))
