"""
Config system - layered, typed configuration for the API dispatcher.

Sources are merged with this precedence (later overrides earlier)::

    defaults < config file (YAML / JSON) < .env file < METRICA_* environment < overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from dotenv import dotenv_values

from .datatable import INDEX_NB_VISITS
from .faults import ConfigInvalidFault

__all__ = [
    "BINDING_LENIENT",
    "BINDING_STRICT",
    "MetricaConfig",
    "ConfigLoader",
    "configure_logging",
]

BINDING_LENIENT = "lenient"
BINDING_STRICT = "strict"

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
_TRUE_WORDS = ("true", "yes", "on", "1")
_FALSE_WORDS = ("false", "no", "off", "0")


def _as_bool(value: Any) -> Any:
    """Map switch-like values to bool; anything else is left for ``validate``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return value


@dataclass
class MetricaConfig:
    """
    Runtime settings.

    Attributes:
        default_format: Renderer used when the request has no ``format``
        default_sort_column: Column the generic sort uses without ``filter_sort_column``
        binding_policy: ``lenient`` passes ``None`` for parameters that fail
            to bind and still calls the method; ``strict`` aborts the call
        enabled_plugins: Module names to enable, ``["*"]`` for all registered
        debug: Show the message of unexpected errors in error payloads
        log_level: Level for ``configure_logging``
        host / port: Bind address of ``metrica serve``
    """
    default_format: str = "php"
    default_sort_column: str = INDEX_NB_VISITS
    binding_policy: str = BINDING_LENIENT
    enabled_plugins: List[str] = field(default_factory=lambda: ["*"])
    debug: bool = False
    log_level: str = "info"
    host: str = "127.0.0.1"
    port: int = 8000

    def validate(self) -> "MetricaConfig":
        if self.binding_policy not in (BINDING_LENIENT, BINDING_STRICT):
            raise ConfigInvalidFault(
                "binding_policy", f"expected '{BINDING_LENIENT}' or '{BINDING_STRICT}', got {self.binding_policy!r}"
            )
        if str(self.log_level).lower() not in _LOG_LEVELS:
            raise ConfigInvalidFault("log_level", f"unknown level {self.log_level!r}")
        if not self.default_format:
            raise ConfigInvalidFault("default_format", "must not be empty")
        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigInvalidFault("port", f"must be an integer between 1 and 65535, got {self.port!r}")
        if not isinstance(self.debug, bool):
            raise ConfigInvalidFault("debug", f"expected a boolean, got {self.debug!r}")
        return self


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage::

        config = ConfigLoader.load(paths=["metrica.yaml"], env_file=".env")
    """

    def __init__(self, env_prefix: str = "METRICA_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[Union[str, Path]]] = None,
        env_prefix: str = "METRICA_",
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> MetricaConfig:
        """
        Load configuration from every source and return a validated config.

        Args:
            paths: YAML or JSON config files, loaded in order
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file
            overrides: Manual overrides (highest precedence)
            environ: Environment to read instead of ``os.environ``
        """
        loader = cls(env_prefix=env_prefix)

        for path in paths or []:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(Path(env_file))

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader.config_data.update(overrides)

        return loader.build()

    def _load_file(self, path: Path) -> None:
        if not path.exists():
            raise ConfigInvalidFault(str(path), "config file not found")
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif path.suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigInvalidFault(str(path), "expected a .yaml, .yml or .json file")
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top level must be a mapping")
        self.config_data.update(data)

    def _load_env_file(self, path: Path) -> None:
        if not path.exists():
            return
        self._load_from_env({k: v for k, v in dotenv_values(path).items() if v is not None})

    def _load_from_env(self, environ: Mapping[str, str]) -> None:
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self.config_data[key[len(self.env_prefix):].lower()] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def build(self) -> MetricaConfig:
        known = {f.name for f in fields(MetricaConfig)}
        kwargs: Dict[str, Any] = {}
        for key, value in self.config_data.items():
            if key not in known:
                continue
            if key == "enabled_plugins" and isinstance(value, str):
                value = [name.strip() for name in value.split(",") if name.strip()]
            if key == "debug":
                value = _as_bool(value)
            if key in ("default_format", "default_sort_column", "binding_policy", "log_level", "host"):
                value = str(value)
            kwargs[key] = value
        return MetricaConfig(**kwargs).validate()


def configure_logging(level: str = "info") -> None:
    """Attach a stream handler to the root logger for CLI and server use."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
