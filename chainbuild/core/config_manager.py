from __future__ import annotations

import json
import os
import pathlib
from copy import deepcopy
from typing import Any, Dict, List, Mapping, Optional, Set, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chainbuild.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_NAMES = ("config.yml", "config.yaml", "config.json")


class BuildSection(BaseModel):
    """Settings consumed by the build pipeline."""

    model_config = ConfigDict(extra="ignore")

    main: str = Field(default="", description="Path of the main package, relative to the source root")
    ldflags: List[str] = Field(default_factory=list, description="Extra linker flags, prepended in order")

    @field_validator("main", mode="before")
    @classmethod
    def validate_main(cls, v: Any) -> str:
        """Normalise an absent main path to an empty string."""
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("build.main must be a string")
        return v.strip()

    @field_validator("ldflags", mode="before")
    @classmethod
    def validate_ldflags(cls, v: Any) -> List[str]:
        """Accept a list of flags, or a single string kept verbatim as one entry."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v.strip()] if v.strip() else []
        if isinstance(v, (list, tuple)):
            flags = []
            for item in v:
                if not isinstance(item, str):
                    raise ValueError(f"build.ldflags entries must be strings, got {type(item).__name__}")
                flags.append(item)
            return flags
        raise ValueError("build.ldflags must be a list of strings")


class GenesisSection(BaseModel):
    """Genesis settings; only the chain identifier matters to the build."""

    model_config = ConfigDict(extra="ignore")

    chain_id: str = ""


class ChainConfig(BaseModel):
    """Validated project configuration.

    Unknown top-level sections (accounts, validators, client generation and
    so on) are accepted and ignored so an existing ``config.yml`` loads as is.
    """

    model_config = ConfigDict(extra="ignore")

    build: BuildSection = Field(default_factory=BuildSection)
    genesis: GenesisSection = Field(default_factory=GenesisSection)


class ConfigManager:
    """Configuration loader for a chain project.

    Loads ``config.yml`` (or ``.yaml``/``.json``) from the source root,
    overlays environment variables and validates the result.

    Environment variables use ``env_prefix`` and a double underscore between
    nesting levels, e.g. ``CHAINBUILD_BUILD__MAIN=cmd/appd``.

    Attributes:
        _config_path: Path to the configuration file
        _env_prefix: Prefix for environment variables
        _config: The merged raw configuration
        _loaded_from_file: Whether configuration was loaded from a file
        _env_vars_applied: Set of applied environment variables
    """

    def __init__(
            self,
            config_path: Optional[Union[str, pathlib.Path]] = None,
            env_prefix: str = "CHAINBUILD_",
            environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
            env_prefix: Prefix for environment variables
            environ: Environment to read overrides from, ``os.environ`` when omitted
        """
        self._config_path = pathlib.Path(config_path) if config_path else pathlib.Path("config.yml")
        self._env_prefix = env_prefix
        self._environ = environ if environ is not None else os.environ
        self._config: Dict[str, Any] = {}
        self._loaded_from_file = False
        self._env_vars_applied: Set[str] = set()

    @classmethod
    def for_source_root(
            cls, source_root: Union[str, pathlib.Path], **kwargs: Any
    ) -> ConfigManager:
        """Create a manager for the first default config file found in ``source_root``."""
        root = pathlib.Path(source_root)
        for name in DEFAULT_CONFIG_NAMES:
            candidate = root / name
            if candidate.exists():
                return cls(candidate, **kwargs)
        return cls(root / DEFAULT_CONFIG_NAMES[0], **kwargs)

    @property
    def config_path(self) -> pathlib.Path:
        return self._config_path

    def load(self) -> ChainConfig:
        """Load, merge and validate the configuration.

        Returns:
            The validated configuration.

        Raises:
            ConfigurationError: If the file cannot be parsed or fails validation
        """
        self._config = ChainConfig().model_dump()
        self._loaded_from_file = False
        self._env_vars_applied = set()
        self._load_from_file()
        self._apply_env_vars()

        try:
            config = ChainConfig.model_validate(self._config)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            key = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid configuration in {self._config_path}: {first.get('msg', str(e))}",
                config_key=key or None,
                details={"errors": e.errors()},
            ) from e

        logger.debug(
            "configuration loaded",
            path=str(self._config_path),
            from_file=self._loaded_from_file,
            env_overrides=sorted(self._env_vars_applied),
        )
        return config

    def _load_from_file(self) -> None:
        """Load configuration from the file if it exists.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        if not self._config_path.exists():
            return

        suffix = self._config_path.suffix.lower()
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                content = f.read()

            if suffix in (".yaml", ".yml"):
                file_config = yaml.safe_load(content)
            elif suffix == ".json":
                file_config = json.loads(content)
            else:
                raise ConfigurationError(
                    f"Unsupported config file format: {self._config_path.suffix}",
                    config_key="config_path",
                )
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Error parsing config file {self._config_path}: {str(e)}",
                config_key="config_path",
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Error reading config file {self._config_path}: {str(e)}",
                config_key="config_path",
            ) from e

        if file_config is None:
            return
        if not isinstance(file_config, dict):
            raise ConfigurationError(
                f"Config file {self._config_path} must contain a mapping at the top level",
                config_key="config_path",
            )
        self._merge_config(file_config)
        self._loaded_from_file = True

    def _apply_env_vars(self) -> None:
        """Override configuration values with prefixed environment variables."""
        for env_name, env_value in self._environ.items():
            if not env_name.startswith(self._env_prefix):
                continue

            config_path = env_name[len(self._env_prefix):].lower().split("__")
            if not all(config_path):
                continue
            self._set_nested_value(self._config, config_path, env_value)
            self._env_vars_applied.add(env_name)

    def _merge_config(self, source: Dict[str, Any]) -> None:
        self._config = self._deep_merge(self._config, source)

    @classmethod
    def _deep_merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge ``override`` into a copy of ``base``."""
        merged = deepcopy(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = cls._deep_merge(merged[key], value)
            else:
                merged[key] = deepcopy(value)
        return merged

    @staticmethod
    def _set_nested_value(config: Dict[str, Any], path: List[str], value: Any) -> None:
        current = config
        for part in path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value


def load_config(source_root: Union[str, pathlib.Path], config_path: Optional[Union[str, pathlib.Path]] = None
                ) -> ChainConfig:
    """Load the configuration of the project rooted at ``source_root``.

    Args:
        source_root: Project source directory.
        config_path: Explicit config file, overriding discovery in ``source_root``.

    Returns:
        The validated configuration.
    """
    if config_path is not None:
        return ConfigManager(config_path).load()
    return ConfigManager.for_source_root(source_root).load()
