"""
Configuration Tests
"""

import pytest

from site_spider.utils.config import ConfigManager, Config, load_config, get_config

CONFIG_YAML = """
spider:
  start_url: "http://example.com/docs/"
  restriction: "^http://example\\\\.com/"
  allow_plus_one: true
  probe_timeout: 10
output:
  type: file
  path: "out/results.csv"
  format: csv
"""


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(CONFIG_YAML)

    config = load_config(str(path))

    assert config.spider.start_url == 'http://example.com/docs/'
    assert config.spider.restriction == r'^http://example\.com/'
    assert config.spider.allow_plus_one is True
    assert config.spider.allow_arguments is False
    assert config.spider.probe_timeout == 10
    assert config.spider.load_timeout == 30.0
    assert config.output.format == 'csv'
    assert config.logging.level == 'INFO'
    assert get_config() is config


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / 'nope.yaml')).load_config()


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text('')

    config = ConfigManager(str(path)).load_config()

    assert config == Config()


@pytest.mark.parametrize('data,message', [
    ({'spider': {'start_url': 'ftp://example.com/'}}, 'start_url'),
    ({'spider': {'probe_timeout': 0}}, 'probe_timeout'),
    ({'spider': {'load_timeout': -1}}, 'load_timeout'),
    ({'output': {'type': 'database'}}, 'Output type'),
    ({'output': {'format': 'xml'}}, 'Output format'),
])
def test_validation(data, message):
    manager = ConfigManager()
    with pytest.raises(ValueError, match=message):
        manager.use(ConfigManager.from_dict(data))


def test_unknown_key_rejected():
    with pytest.raises(TypeError):
        ConfigManager.from_dict({'spider': {'max_depth': 3}})


def test_config_not_loaded():
    with pytest.raises(ValueError, match='not loaded'):
        ConfigManager('whatever.yaml').config
