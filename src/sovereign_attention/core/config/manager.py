"""
Configuration loading.

Sources are layered, lowest precedence first: model defaults, a YAML or
JSON file, SAP_* environment variables, then explicit command line values.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from sovereign_attention.core.config.models import AppConfig, LoggingConfig
from sovereign_attention.core.exceptions import ConfigurationError, ErrorCode


# Section and field addressed by a dotted key
FieldPath = Tuple[str, str]

CLI_FIELDS: Dict[str, FieldPath] = {
    'db': ('storage', 'db_path'),
    'db_path': ('storage', 'db_path'),
    'days': ('storage', 'cleanup_days'),
    'top': ('attention', 'default_top'),
    'hydrate': ('attention', 'hydrate_on_start'),
    'load_rules': ('rules', 'load_on_start'),
    'log_level': ('logging', 'level'),
    'log_file': ('logging', 'log_file'),
}

TRUE_STRINGS = frozenset({'true', '1', 'yes', 'on', 'enabled'})


def _merge(base: Dict[str, Any], layer: Dict[str, Any]) -> Dict[str, Any]:
    """Return base overlaid with layer; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _merge(current, value)
        merged[key] = value
    return merged


def _assign(target: Dict[str, Any], path: FieldPath, value: Any) -> None:
    section, name = path
    target.setdefault(section, {})[name] = value


class ConfigManager:
    """
    Builds an AppConfig from layered sources.

    Args:
        config_file: Explicit configuration file; when omitted the search
            paths are tried in order and the first existing file wins
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[AppConfig] = None
        self._config_paths = self._search_paths()

    @staticmethod
    def _search_paths() -> List[Path]:
        cwd = Path.cwd()
        paths = [cwd / name for name in ("sap.yaml", "sap.yml", ".sap.yaml")]
        paths.append(Path.home() / ".sap" / "config.yaml")

        xdg_home = os.environ.get('XDG_CONFIG_HOME')
        if xdg_home:
            paths.append(Path(xdg_home) / "sap" / "config.yaml")
        return paths

    @property
    def config(self) -> Optional[AppConfig]:
        """The most recently loaded configuration."""
        return self._config

    def load_config(
        self,
        cli_args: Optional[Dict[str, Any]] = None,
        env_prefix: str = "SAP_"
    ) -> AppConfig:
        """
        Resolve every source and validate the result.

        Args:
            cli_args: Command line values keyed by option name; None values
                and unrecognised keys are skipped
            env_prefix: Prefix of the environment variables to read

        Raises:
            ConfigurationError: If a source cannot be read or the merged
                values fail validation
        """
        layers = [
            self._read_file_layer(),
            self._read_env_layer(env_prefix),
            self._read_cli_layer(cli_args or {}),
        ]

        data: Dict[str, Any] = {}
        for layer in layers:
            data = _merge(data, layer)

        try:
            self._config = AppConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                error_code=ErrorCode.CONFIG_SCHEMA_VALIDATION,
                cause=e
            )
        return self._config

    # Sources

    def _locate_file(self) -> Optional[Path]:
        if self.config_file is not None:
            if not self.config_file.exists():
                raise ConfigurationError(
                    f"Config file not found: {self.config_file}",
                    error_code=ErrorCode.CONFIG_FILE_NOT_FOUND,
                    config_key="config_file",
                    config_value=str(self.config_file)
                )
            return self.config_file

        return next((path for path in self._config_paths if path.is_file()), None)

    @staticmethod
    def _parse_text(text: str, suffix: str) -> Any:
        if suffix == '.json':
            return json.loads(text)
        if suffix in ('.yaml', '.yml'):
            return yaml.safe_load(text)
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            return json.loads(text)

    def _read_file_layer(self) -> Dict[str, Any]:
        path = self._locate_file()
        if path is None:
            return {}

        try:
            data = self._parse_text(path.read_text(encoding='utf-8'), path.suffix.lower())
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot parse config file {path}: {e}",
                error_code=ErrorCode.CONFIG_INVALID_FORMAT,
                cause=e
            )

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {path} must contain a mapping at the top level",
                error_code=ErrorCode.CONFIG_INVALID_FORMAT
            )
        return data

    def _read_env_layer(self, prefix: str) -> Dict[str, Any]:
        variables: Dict[str, Tuple[FieldPath, Callable[[str], Any]]] = {
            'DB_PATH': (('storage', 'db_path'), str),
            'CLEANUP_DAYS': (('storage', 'cleanup_days'), int),
            'LOAD_RULES': (('rules', 'load_on_start'), self._parse_bool),
            'HYDRATE_METRICS': (('attention', 'hydrate_on_start'), self._parse_bool),
            'LOG_LEVEL': (('logging', 'level'), str),
            'LOG_FILE': (('logging', 'log_file'), str),
        }

        layer: Dict[str, Any] = {}
        for suffix, (path, convert) in variables.items():
            name = prefix + suffix
            raw = os.environ.get(name)
            if raw is None:
                continue
            try:
                _assign(layer, path, convert(raw))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {name}: {raw!r} ({e})",
                    error_code=ErrorCode.CONFIG_INVALID_VALUE,
                    config_key=name,
                    config_value=raw
                )
        return layer

    @staticmethod
    def _read_cli_layer(cli_args: Dict[str, Any]) -> Dict[str, Any]:
        layer: Dict[str, Any] = {}
        for key, value in cli_args.items():
            if value is not None and key in CLI_FIELDS:
                _assign(layer, CLI_FIELDS[key], value)
        return layer

    @staticmethod
    def _parse_bool(value: Union[str, bool]) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in TRUE_STRINGS
        return bool(value)

    # Diagnostics

    def validate_config(self, config: Optional[AppConfig] = None) -> List[str]:
        """
        Check a configuration for problems that validation cannot catch.

        Returns:
            Human-readable warnings; empty when nothing looks wrong
        """
        config = config or self._config
        if config is None:
            return ["No configuration loaded"]

        warnings = []
        db_dir = config.storage.db_path.parent
        if db_dir.exists() and not os.access(db_dir, os.W_OK):
            warnings.append(f"Database directory is not writable: {db_dir}")

        log_file = config.logging.log_file
        if log_file and not Path(log_file).parent.exists():
            warnings.append(f"Log directory does not exist: {Path(log_file).parent}")

        if config.storage.cleanup_days == 0:
            warnings.append("cleanup_days is 0: cleanup will remove every metrics record")
        return warnings

    def create_example_config(self, output_file: Path) -> None:
        """Write the default configuration as YAML to output_file."""
        example = AppConfig(logging=LoggingConfig(level="INFO"))
        Path(output_file).write_text(
            yaml.safe_dump(example.model_dump(mode='json'), default_flow_style=False, indent=2),
            encoding='utf-8'
        )
