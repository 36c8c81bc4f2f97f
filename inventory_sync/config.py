import os
import configparser
from pathlib import Path

class Config:
    """Configuration manager for the Inventory Sync client."""

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

        self._config_dir = Path(os.getenv('INVENTORY_SYNC_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'type': 'supabase',
            'url': 'sqlite:///inventory.db',
            'echo': 'False'
        }

        self._config['SUPABASE'] = {
            'url': '',
            'key': '',
            'bucket': 'stock'
        }

        self._config['STORAGE'] = {
            'directory': 'uploads',
            'public_base_url': 'http://localhost:8000/uploads'
        }

        self._config['IMAGE'] = {
            'max_bytes': '102400',  # 100KB
            'quality': '75',
            'bits_per_pixel': '3',
            'safety_factor': '0.9',
            'max_passes': '1'
        }

        self._config['INVENTORY'] = {
            'page_size': '10',
            'debounce_ms': '500',
            'default_threshold': '10'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
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
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    @property
    def supabase_config(self):
        """Get Supabase connection settings.

        SUPABASE_URL and SUPABASE_KEY in the environment win over the file.
        """
        return {
            'url': os.getenv('SUPABASE_URL') or self.get('SUPABASE', 'url', ''),
            'key': os.getenv('SUPABASE_KEY') or self.get('SUPABASE', 'key', ''),
            'bucket': self.get('SUPABASE', 'bucket', 'stock')
        }

    @property
    def storage_config(self):
        """Get local blob storage configuration."""
        return {
            'directory': self.get('STORAGE', 'directory', 'uploads'),
            'public_base_url': self.get('STORAGE', 'public_base_url', 'http://localhost:8000/uploads')
        }

    @property
    def image_config(self):
        """Get image compression configuration."""
        return {
            'max_bytes': self.get_int('IMAGE', 'max_bytes', 100 * 1024),
            'quality': self.get_int('IMAGE', 'quality', 75),
            'bits_per_pixel': self.get_float('IMAGE', 'bits_per_pixel', 3.0),
            'safety_factor': self.get_float('IMAGE', 'safety_factor', 0.9),
            'max_passes': self.get_int('IMAGE', 'max_passes', 1)
        }

    @property
    def inventory_config(self):
        """Get inventory listing configuration."""
        return {
            'page_size': self.get_int('INVENTORY', 'page_size', 10),
            'debounce_ms': self.get_int('INVENTORY', 'debounce_ms', 500),
            'default_threshold': self.get_int('INVENTORY', 'default_threshold', 10)
        }

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

# Global config instance
config = Config()
