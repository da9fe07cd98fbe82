"""
Configuration management for stack deployments.

Settings live in a YAML file (``stackdeploy.yaml`` by default) and can be
overridden through environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from cloudformation.artifact import UNKNOWN_ACCOUNT, UNKNOWN_REGION, Environment, StackArtifact
from cloudformation.assets import FileAsset
from cloudformation.bootstrap import DEFAULT_TOOLKIT_STACK_NAME
from cloudformation.deploy_stack import DEFAULT_CHANGE_SET_PREFIX
from cloudformation.errors import ConfigurationError

DEFAULT_CONFIG_FILE = "stackdeploy.yaml"

_STRING_MAP = {"type": "object", "additionalProperties": {"type": ["string", "null"]}}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "region": {"type": "string"},
        "profile": {"type": "string"},
        "toolkit_stack_name": {"type": "string", "minLength": 1},
        "toolkit_bucket": {"type": "string"},
        "change_set_prefix": {"type": "string", "pattern": "^[a-zA-Z][-a-zA-Z0-9]*$"},
        "stack_poll_interval": {"type": "number", "minimum": 0},
        "change_set_poll_interval": {"type": "number", "minimum": 0},
        "monitor_poll_interval": {"type": "number", "minimum": 0},
        "tags": _STRING_MAP,
        "stacks": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "required": ["template"],
                "properties": {
                    "template": {"type": "string"},
                    "stack_name": {"type": "string"},
                    "account": {"type": ["string", "integer"]},
                    "region": {"type": "string"},
                    "parameters": _STRING_MAP,
                    "tags": _STRING_MAP,
                    "role_arn": {"type": "string"},
                    "notification_arns": {"type": "array", "items": {"type": "string"}},
                    "assets": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": [
                                "id", "path", "bucket_parameter", "key_parameter", "hash_parameter"
                            ],
                            "properties": {
                                "id": {"type": "string"},
                                "path": {"type": "string"},
                                "packaging": {"enum": ["file", "zip"]},
                                "bucket_parameter": {"type": "string"},
                                "key_parameter": {"type": "string"},
                                "hash_parameter": {"type": "string"},
                            },
                        },
                    },
                },
            },
        },
    },
}

ENVIRONMENT_OVERRIDES = {
    "STACKDEPLOY_REGION": "region",
    "AWS_PROFILE": "profile",
    "STACKDEPLOY_TOOLKIT_BUCKET": "toolkit_bucket",
    "STACKDEPLOY_TOOLKIT_STACK_NAME": "toolkit_stack_name",
}


@dataclass
class StackConfig:
    """Deployment settings for one stack."""

    name: str
    template: str
    stack_name: Optional[str] = None
    account: Optional[str] = None
    region: Optional[str] = None
    parameters: Dict[str, Optional[str]] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
    role_arn: Optional[str] = None
    notification_arns: List[str] = field(default_factory=list)
    assets: List[Dict[str, Any]] = field(default_factory=list)

    def get_stack_name(self) -> str:
        return self.stack_name or self.name

    def environment(self, default_region: Optional[str] = None) -> Environment:
        return Environment(
            account=self.account or UNKNOWN_ACCOUNT,
            region=self.region or default_region or UNKNOWN_REGION,
        )

    def to_artifact(self, base_dir: Path, default_region: Optional[str] = None) -> StackArtifact:
        """Load the template and assets into a deployable artifact."""
        template_path = Path(self.template)
        if not template_path.is_absolute():
            template_path = base_dir / template_path

        assets = []
        for entry in self.assets:
            asset_path = Path(entry["path"])
            if not asset_path.is_absolute():
                asset_path = base_dir / asset_path
            assets.append(FileAsset.from_dict({**entry, "path": str(asset_path)}))

        try:
            return StackArtifact.from_template_file(
                template_path,
                stack_name=self.get_stack_name(),
                environment=self.environment(default_region),
                assets=tuple(assets),
                artifact_id=self.name,
            )
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not load template for {self.name}: {e}", stack_name=self.get_stack_name()
            ) from e

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "StackConfig":
        data = dict(data)
        if data.get("account") is not None:
            data["account"] = str(data["account"])
        return cls(name=name, **data)


@dataclass
class DeployConfig:
    """Tool-wide deployment settings."""

    region: Optional[str] = None
    profile: Optional[str] = None
    toolkit_stack_name: str = DEFAULT_TOOLKIT_STACK_NAME
    toolkit_bucket: Optional[str] = None
    change_set_prefix: str = DEFAULT_CHANGE_SET_PREFIX

    # Polling (seconds)
    stack_poll_interval: float = 5.0
    change_set_poll_interval: float = 5.0
    monitor_poll_interval: float = 2.0

    # Tags applied to every stack, stack-level tags win
    tags: Dict[str, str] = field(default_factory=dict)

    stacks: Dict[str, StackConfig] = field(default_factory=dict)

    # Directory relative template and asset paths are resolved against
    base_dir: Path = field(default_factory=Path.cwd)

    def get_stack(self, name: str) -> StackConfig:
        """Get the settings of a configured stack."""
        if name not in self.stacks:
            raise ConfigurationError(f"Unknown stack: {name}")
        return self.stacks[name]

    def poll_intervals(self) -> Dict[str, float]:
        return {
            "stack_poll_interval": self.stack_poll_interval,
            "change_set_poll_interval": self.change_set_poll_interval,
            "monitor_poll_interval": self.monitor_poll_interval,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "DeployConfig":
        """Create config from dictionary."""
        data = dict(data)
        stacks = {
            name: StackConfig.from_dict(name, entry)
            for name, entry in (data.pop("stacks", None) or {}).items()
        }
        return cls(stacks=stacks, base_dir=base_dir or Path.cwd(), **data)


def validate_config_data(data: Dict[str, Any], source: str = "configuration") -> None:
    """Validate raw configuration against the schema."""
    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid {source} at {location}: {e.message}") from e


class ConfigManager:
    """Loads, validates and caches the deployment configuration."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """Initialize config manager."""
        self.config_file = Path(config_file) if config_file else Path.cwd() / DEFAULT_CONFIG_FILE
        self._config: Optional[DeployConfig] = None

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            return {}
        with open(self.config_file, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Could not parse {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.config_file} must contain a mapping")
        return data

    def _apply_environment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        for variable, key in ENVIRONMENT_OVERRIDES.items():
            value = os.environ.get(variable)
            if value:
                data[key] = value
        return data

    def load(self) -> DeployConfig:
        """Load the configuration file, applying environment overrides."""
        if self._config is None:
            data = self._read_file()
            validate_config_data(data, source=str(self.config_file))
            data = self._apply_environment(data)
            self._config = DeployConfig.from_dict(data, base_dir=self.config_file.parent)
        return self._config


# Singleton instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[Union[str, Path]] = None) -> ConfigManager:
    """Get or create the config manager instance."""
    global _config_manager
    if _config_manager is None or config_file is not None:
        _config_manager = ConfigManager(config_file)
    return _config_manager


def get_config(config_file: Optional[Union[str, Path]] = None) -> DeployConfig:
    """Get the deployment configuration."""
    return get_config_manager(config_file).load()
