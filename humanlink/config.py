"""
HUMANLINK Configuration System

Configuration with YAML files, environment variables and validation.

Configuration Sources (in order of precedence):
    1. Environment variables (HUMANLINK_*)
    2. Runtime overrides and loaded files (last applied wins)
    3. Default values

Default file locations, checked by load_defaults():
    ./humanlink.yaml
    ./config/humanlink.yaml
    ~/.humanlink/config.yaml

Example humanlink.yaml:

    registry:
      home_chain_id: 1
      credential_contract: "0x…"
      verifier_contract: "0x…"
      trusted_relayers: ["0x…"]
    observability:
      log_level: info
      log_format: json

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from humanlink.hardening import NULL_ADDRESS, ValidationError, Validators, normalize_address
from humanlink.observability import Layer, LogLevel, get_logger

logger = get_logger("manager", Layer.CONFIG)

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _is_address(value: Any) -> bool:
    return Validators.validate_address(value).is_valid


def _is_contract_address(value: Any) -> bool:
    # Unset contracts are allowed until a registry is built from the config.
    return value == "" or _is_address(value)


def _canonical_contract(value: Any) -> str:
    if value == "":
        return value
    return normalize_address(value, "contract")


def _canonical_relayers(value: Any) -> list:
    if not isinstance(value, list):
        raise ValidationError("trusted_relayers", "Expected a list", value)
    return [normalize_address(a, "trusted_relayers") for a in value]


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    A normalizer, when given, maps accepted input to its canonical form
    before validation, so a YAML integer and a hex string store alike.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    normalizer: Optional[Callable[[Any], T]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._normalize(self._coerce(os.environ[self.env_var]))
        return self._value if self._value is not None else self.default

    def set(self, value: Any) -> None:
        """Set the value with validation. Strings are coerced to the default's type."""
        if isinstance(value, str) and not isinstance(self.default, str):
            value = self._coerce(value)
        value = self._normalize(value)
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _normalize(self, value: Any) -> T:
        if self.normalizer is None:
            return value
        try:
            return self.normalizer(value)
        except (ValidationError, TypeError, ValueError) as e:
            raise ConfigValidationError(f"Invalid value for config: {value!r} ({e})") from e

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value)  # type: ignore
            elif target_type == list:
                return [v.strip() for v in value.split(",") if v.strip()]  # type: ignore
        except ValueError as e:
            raise ConfigValidationError(f"Cannot coerce {value!r} to {target_type.__name__}") from e
        return value  # type: ignore


@dataclass
class RegistrySettings:
    """Construction-time configuration of a registry instance."""
    home_chain_id: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1,
        env_var="HUMANLINK_HOME_CHAIN_ID",
        description="Chain id of the home network where linking is allowed",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    credential_contract: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="HUMANLINK_CREDENTIAL_CONTRACT",
        description="Address of the credential (soulbound NFT) contract on home",
        validator=_is_contract_address,
        normalizer=_canonical_contract,
    ))
    verifier_contract: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="HUMANLINK_VERIFIER_CONTRACT",
        description="Address of the proof verifier contract",
        validator=_is_contract_address,
        normalizer=_canonical_contract,
    ))
    trusted_relayers: ConfigValue[list] = field(default_factory=lambda: ConfigValue(
        default=[],
        env_var="HUMANLINK_TRUSTED_RELAYERS",
        description="Comma-separated addresses allowed to relay commitments",
        validator=lambda x: isinstance(x, list) and all(_is_address(a) for a in x),
        normalizer=_canonical_relayers,
    ))
    instance_id: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="HUMANLINK_INSTANCE_ID",
        description="Stable instance name recorded in snapshots (generated when empty)",
        validator=lambda x: isinstance(x, str),
    ))


@dataclass
class ObservabilitySettings:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="HUMANLINK_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in {level.value for level in LogLevel},
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="HUMANLINK_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class HumanlinkConfig:
    """Root configuration."""
    registry: RegistrySettings = field(default_factory=RegistrySettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)

    def require_contracts(self) -> None:
        """Raise ConfigError unless both capability contracts are configured."""
        for name in ("credential_contract", "verifier_contract"):
            value = getattr(self.registry, name).get()
            if not value or value == NULL_ADDRESS:
                raise ConfigError(f"registry.{name} is not configured")


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = HumanlinkConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next ConfigManager() starts from defaults."""
        with cls._lock:
            cls._instance = None

    @property
    def config(self) -> HumanlinkConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        if data:
            self._apply_dict(data)
        self._config_paths.append(path)
        logger.info("Loaded configuration file", operation="load", path=str(path))

    def load_defaults(self) -> None:
        """Load default configuration files that exist."""
        default_paths = [
            Path("humanlink.yaml"),
            Path("config/humanlink.yaml"),
            Path.home() / ".humanlink" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                self.load_from_file(path)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                path = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{path}.")
                else:
                    raise ConfigError(f"Expected a mapping for config section: {path}")

        apply_to_config(self._config, data, "")

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("registry.home_chain_id", 10)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("observability.log_level")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        if hasattr(obj, "__dataclass_fields__"):
            return {k: getattr(obj, k).get() for k in obj.__dataclass_fields__}
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = obj.default
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> HumanlinkConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
