"""
Configuration management for prosail-sim.

Supports:
    - YAML configuration files
    - Environment variable overrides
    - Auto-detection of the available threads

Command-line arguments take precedence over every value here.
"""

import copy
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    # Worker threads
    'processing': {
        'n_threads': None,        # Auto-detect (all logical CPUs)
    },

    # Band noise
    'noise': {
        'seed': None,             # None: seeded from OS entropy
    },

    # Simulation output
    'output': {
        'precision': 6,           # Significant digits per value
    },

    # PROSAIL options
    'model': {
        'prospect_version': '5',  # '5' or 'D'
        'psoil': 1.0,             # 1 = dry soil
    },
}

CONFIG_PATHS = [
    Path.home() / '.prosail_sim' / 'config.yaml',
    Path.home() / '.config' / 'prosail_sim' / 'config.yaml',
    Path.cwd() / 'prosail_sim_config.yaml',
]


class Config:
    """Configuration manager with environment overrides."""

    _instance = None
    _config: Dict[str, Any] = {}

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self._load_config_file()
        self._apply_env_overrides()

    @classmethod
    def reset(cls):
        """Drop the current instance; the next access reloads everything."""
        cls._instance = None

    def _load_config_file(self):
        """Load configuration from the first YAML file found."""
        for config_path in CONFIG_PATHS:
            if config_path.exists():
                try:
                    self.load(config_path)
                    return
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Failed to load {config_path}: {e}")

    def load(self, path: Path):
        """Merge a YAML file into the current configuration."""
        with open(path) as f:
            user_config = yaml.safe_load(f)
        if user_config:
            self._merge_config(user_config)
        logger.info(f"Loaded config from: {path}")

    def _merge_config(self, user_config: Dict):
        """Deep merge user config into default config."""
        def merge(base, override):
            for key, value in override.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    merge(base[key], value)
                else:
                    base[key] = value
        merge(self._config, user_config)

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        env_mapping = {
            'PROSAIL_SIM_THREADS': ('processing', 'n_threads'),
            'PROSAIL_SIM_NOISE_SEED': ('noise', 'seed'),
            'PROSAIL_SIM_PRECISION': ('output', 'precision'),
        }

        for env_var, config_path in env_mapping.items():
            if env_var in os.environ:
                section, key = config_path
                try:
                    value = int(os.environ[env_var])
                except ValueError:
                    logger.warning(f"Ignoring {env_var}={os.environ[env_var]!r}: not an integer")
                    continue
                self._config[section][key] = value
                logger.debug(f"Config override from {env_var}: {section}.{key} = {value}")

    def get(self, *keys, default=None):
        """Get nested config value."""
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys_and_value):
        """Set nested config value."""
        *keys, value = keys_and_value
        target = self._config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    def save(self, path: Optional[Path] = None):
        """Save current config to YAML file."""
        if path is None:
            path = CONFIG_PATHS[0]
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self._config, f, default_flow_style=False)
        logger.info(f"Saved config to: {path}")

    @property
    def n_threads(self) -> Optional[int]:
        return self._config['processing']['n_threads']

    @property
    def noise_seed(self) -> Optional[int]:
        return self._config['noise']['seed']

    @property
    def precision(self) -> int:
        return self._config['output']['precision']

    @property
    def prospect_version(self) -> str:
        return str(self._config['model']['prospect_version'])

    @property
    def psoil(self) -> float:
        return float(self._config['model']['psoil'])

    def __repr__(self):
        return f"Config({self._config})"


# Singleton accessor
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
