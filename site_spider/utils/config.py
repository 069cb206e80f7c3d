"""
Configuration management for the site spider.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml


@dataclass
class SpiderConfig:
    """Configuration for spider behavior."""
    start_url: str = ''
    restriction: Optional[str] = None
    allow_plus_one: bool = False
    allow_arguments: bool = False
    check_inline: bool = False
    probe_timeout: float = 30.0
    load_timeout: float = 30.0
    user_agent: str = 'SiteSpider/1.0'


@dataclass
class OutputConfig:
    """Configuration for the result sink."""
    type: str = 'console'
    path: str = 'results/results.jsonl'
    format: str = 'jsonl'


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/spider.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    spider: SpiderConfig = field(default_factory=SpiderConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file) or {}

        self._config = self.from_dict(config_data)
        self._validate_config()
        return self._config

    @staticmethod
    def from_dict(config_data: Dict[str, Any]) -> Config:
        """Build a Config from parsed YAML; missing sections use defaults."""
        return Config(
            spider=SpiderConfig(**(config_data.get('spider') or {})),
            output=OutputConfig(**(config_data.get('output') or {})),
            logging=LoggingConfig(**(config_data.get('logging') or {})),
            monitoring=MonitoringConfig(**(config_data.get('monitoring') or {}))
        )

    def use(self, config: Config) -> Config:
        """Adopt an already-built configuration (e.g. after CLI overrides)."""
        self._config = config
        self._validate_config()
        return config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")

        spider = self._config.spider

        # Validate start URL
        if spider.start_url:
            scheme = urlparse(spider.start_url.strip()).scheme.lower()
            if scheme not in ('http', 'https'):
                raise ValueError("start_url must be an http:// or https:// URL")

        # Validate timeouts
        if spider.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")

        if spider.load_timeout <= 0:
            raise ValueError("load_timeout must be positive")

        # Validate output
        if self._config.output.type not in ['console', 'file']:
            raise ValueError("Output type must be 'console' or 'file'")

        if self._config.output.format not in ['jsonl', 'csv']:
            raise ValueError("Output format must be 'jsonl' or 'csv'")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
