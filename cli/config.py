#!/usr/bin/env python3
"""
Configuration Management Module for the Storefront CLI

Handles hierarchical configuration loading (defaults, profile, config file,
environment variables), validation and persistence of storefront settings.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from registry.units import parse_amount


# Environment variable prefix; nested keys are separated by a double underscore,
# e.g. STOREFRONT_COLLECTION__MAX_SUPPLY=30
ENV_PREFIX = 'STOREFRONT_'
ENV_NESTING = '__'

DEFAULT_CONFIG = {
    # Deployment parameters
    'collection': {
        'name': 'Dapp Punks',
        'symbol': 'DP',
        'cost': '10 ether',
        'max_supply': 25,
        'max_mint_amount': 5,
        'mint_delay': 60,  # seconds from deployment until minting opens
        'base_uri': 'ipfs://QmQ2jnDYecFhrf3asEWjyjZRX1pZSsNWG3qHzmNDvXa9qg/'
    },

    # Storefront runtime
    'storefront': {
        'data_dir': '~/.storefront/collection',
        'account': None,
        'image_gateway': 'https://gateway.pinata.cloud/ipfs/QmQPEMsfd1tJnqYPbnTQCjoa8vczfsV1FmqZWgRdNQ7z3g/',
        'lock_timeout': 30.0,
        'require_whitelist': True
    },

    # CLI behavior
    'cli': {
        'output_format': 'table',  # table, json, yaml
        'verbose': 0
    }
}

PROFILES = {
    'production': {
        'cli': {'verbose': 0},
        'storefront': {'require_whitelist': True}
    },
    'development': {
        'collection': {'mint_delay': 0},
        'cli': {'verbose': 2}
    }
}


def config_search_paths() -> List[Path]:
    """Configuration file locations in order of precedence (highest to lowest)."""
    return [
        Path.cwd() / '.storefront.yml',
        Path.cwd() / '.storefront.json',
        Path.home() / '.storefront' / 'config.yml',
        Path.home() / '.storefront' / 'config.json',
    ]


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to apply (production, development)
        """
        self.logger = logging.getLogger('storefront-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        self._config_sources = []
        configs = [copy.deepcopy(DEFAULT_CONFIG)]
        self._config_sources.append("defaults")

        if self.profile:
            if self.profile not in PROFILES:
                raise ValueError(f"Unknown configuration profile: {self.profile}")
            configs.append(PROFILES[self.profile])
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        if self.config_file:
            configs.append(self._load_config_file(Path(self.config_file)))
            self._config_sources.append(f"file:{self.config_file}")
        else:
            for config_path in config_search_paths():
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        self._config_cache = self._deep_merge(*configs)
        self._expand_paths(self._config_cache)

        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unknown config file format: {path}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, None]:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                elif isinstance(value, dict):
                    result[key] = self._deep_merge(value)
                else:
                    result[key] = value

        return result

    def _expand_paths(self, config: Dict[str, Any]):
        """Expand ~ and environment variables in path values."""
        for key, value in config.items():
            if isinstance(value, dict):
                self._expand_paths(value)
            elif isinstance(value, str) and (value.startswith('~') or '$' in value):
                config[key] = os.path.expanduser(os.path.expandvars(value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'collection.max_supply')
            default: Default value if key not found
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """Set configuration value by dot-notation path."""
        config = self.load()

        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def save(self, path: Optional[str] = None, format: str = 'yaml') -> Path:
        """
        Save current configuration to file.

        Args:
            path: File path to save to (default: project config file)
            format: Output format ('yaml' or 'json')
        """
        if not path:
            path = Path.cwd() / ('.storefront.yml' if format == 'yaml' else '.storefront.json')

        path = write_config_file(self.load(), path, format)
        self.logger.info(f"Configuration saved to {path}")
        return path

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        collection = config.get('collection', {})

        for key in ('max_supply', 'max_mint_amount'):
            value = collection.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(f"collection.{key} must be a positive integer")

        mint_delay = collection.get('mint_delay')
        if not isinstance(mint_delay, int) or isinstance(mint_delay, bool) or mint_delay < 0:
            errors.append("collection.mint_delay must be a non-negative integer")

        try:
            parse_amount(collection.get('cost', ''))
        except (TypeError, ValueError, AttributeError):
            errors.append(f"Invalid collection cost: {collection.get('cost')}")

        base_uri = collection.get('base_uri')
        if not isinstance(base_uri, str) or not base_uri.endswith('/'):
            errors.append("collection.base_uri must end with '/'")

        gateway = config.get('storefront', {}).get('image_gateway')
        if gateway is not None and not str(gateway).endswith('/'):
            errors.append("storefront.image_gateway must end with '/'")

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in ['table', 'json', 'yaml']:
            errors.append(f"Invalid output format: {output_format}")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources

    def reset(self):
        """Reset configuration cache."""
        self._config_cache = None
        self._config_sources = []


def default_config(profile: Optional[str] = None) -> Dict[str, Any]:
    """Built-in defaults with an optional profile applied, ignoring files and environment."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if profile:
        if profile not in PROFILES:
            raise ValueError(f"Unknown configuration profile: {profile}")
        config = ConfigurationManager()._deep_merge(config, PROFILES[profile])
    return config


def write_config_file(config: Dict[str, Any], path: Union[str, Path], format: str = 'yaml') -> Path:
    """Write a configuration mapping as YAML or JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if format == 'yaml':
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config, f, indent=2)

    return path


def load_config(config_file: Optional[str] = None,
                profile: Optional[str] = None) -> Dict[str, Any]:
    """Convenience function to load configuration."""
    return ConfigurationManager(config_file, profile).load()
