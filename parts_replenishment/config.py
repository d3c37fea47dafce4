import os
import configparser
from pathlib import Path

from parts_replenishment.exceptions import ConfigError

DEFAULT_SETTINGS = {
    'DATABASE': {
        'url': 'sqlite:///parts_replenishment.db',
        'echo': 'False'
    },
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True',
        'file_output': 'False'
    },
    'DEMAND_ANALYSIS': {
        'lookback_months': '24',
        'forecast_months': '12'
    },
    'REORDER_POINT': {
        'default_lead_time_days': '14',
        'default_safety_stock': '5',
        'carrying_cost_rate': '0.25',
        'stockout_cost_per_unit': '100.0'
    },
    'SUPPLIER_EVALUATION': {
        'lookback_months': '24',
        'expected_lead_time_days': '14'
    },
    'RECOMMENDATION': {
        'ordering_cost': '50.0',
        'carrying_cost_per_unit': '10.0',
        'default_unit_cost': '50.0'
    },
    'BATCH_PROCESS': {
        'batch_size': '5',
        'batch_pause_seconds': '1.0'
    },
    'NARRATIVE': {
        'enabled': 'False',
        'model': 'claude-3-5-sonnet-latest',
        'max_tokens': '2000',
        'temperature': '0.1',
        'timeout_seconds': '30',
        'api_key_env': 'ANTHROPIC_API_KEY'
    }
}


class Config:
    """Configuration manager for the Parts Replenishment engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(
            os.getenv('PARTS_REPLENISHMENT_CONFIG', str(Path('config') / 'settings.ini'))
        )
        self._config = configparser.ConfigParser(interpolation=None)
        self._config.read_dict(DEFAULT_SETTINGS)

        # Values in the settings file override the defaults
        if self._config_path.exists():
            try:
                self._config.read(self._config_path)
            except configparser.Error as e:
                raise ConfigError(
                    f"Invalid settings file {self._config_path}: {str(e)}",
                    details={'path': str(self._config_path)}
                )

        self._initialized = True

    def save(self):
        """Write the current configuration to the settings file."""
        if not self._config_path.parent.exists():
            self._config_path.parent.mkdir(parents=True)

        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value (in memory; call save() to persist)."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))

    def get_db_url(self):
        """Get SQLAlchemy database URL."""
        return os.getenv('PARTS_REPLENISHMENT_DB_URL') or self.get(
            'DATABASE', 'url', 'sqlite:///parts_replenishment.db'
        )

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', False)
        }

    @property
    def demand_config(self):
        """Get demand analysis configuration."""
        return {
            'lookback_months': self.get_int('DEMAND_ANALYSIS', 'lookback_months', 24),
            'forecast_months': self.get_int('DEMAND_ANALYSIS', 'forecast_months', 12)
        }

    @property
    def reorder_point_config(self):
        """Get reorder point and safety stock configuration."""
        return {
            'default_lead_time_days': self.get_float('REORDER_POINT', 'default_lead_time_days', 14.0),
            'default_safety_stock': self.get_float('REORDER_POINT', 'default_safety_stock', 5.0),
            'carrying_cost_rate': self.get_float('REORDER_POINT', 'carrying_cost_rate', 0.25),
            'stockout_cost_per_unit': self.get_float('REORDER_POINT', 'stockout_cost_per_unit', 100.0)
        }

    @property
    def supplier_config(self):
        """Get supplier evaluation configuration."""
        return {
            'lookback_months': self.get_int('SUPPLIER_EVALUATION', 'lookback_months', 24),
            'expected_lead_time_days': self.get_float('SUPPLIER_EVALUATION', 'expected_lead_time_days', 14.0)
        }

    @property
    def recommendation_config(self):
        """Get recommendation cost configuration."""
        return {
            'ordering_cost': self.get_float('RECOMMENDATION', 'ordering_cost', 50.0),
            'carrying_cost_per_unit': self.get_float('RECOMMENDATION', 'carrying_cost_per_unit', 10.0),
            'default_unit_cost': self.get_float('RECOMMENDATION', 'default_unit_cost', 50.0)
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'batch_size': self.get_int('BATCH_PROCESS', 'batch_size', 5),
            'batch_pause_seconds': self.get_float('BATCH_PROCESS', 'batch_pause_seconds', 1.0)
        }

    @property
    def narrative_config(self):
        """Get narrative reasoning service configuration."""
        return {
            'enabled': self.get_boolean('NARRATIVE', 'enabled', False),
            'model': self.get('NARRATIVE', 'model', 'claude-3-5-sonnet-latest'),
            'max_tokens': self.get_int('NARRATIVE', 'max_tokens', 2000),
            'temperature': self.get_float('NARRATIVE', 'temperature', 0.1),
            'timeout_seconds': self.get_float('NARRATIVE', 'timeout_seconds', 30.0),
            'api_key_env': self.get('NARRATIVE', 'api_key_env', 'ANTHROPIC_API_KEY')
        }

# Global config instance
config = Config()
