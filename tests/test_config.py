import importlib
import logging

from covid_pipeline import config


def test_parse_log_level():
    assert config.parse_log_level("debug") == logging.DEBUG
    assert config.parse_log_level(" WARNING ") == logging.WARNING
    assert config.parse_log_level("FOO") == logging.INFO
    assert config.parse_log_level("") == logging.INFO


def test_unknown_env_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("COVID_LOG_LEVEL", "FOO")
    try:
        reloaded = importlib.reload(config)
        assert reloaded.LOG_LEVEL == logging.INFO
        # a handler accepts the resolved level
        logging.StreamHandler().setLevel(reloaded.LOG_LEVEL)
    finally:
        monkeypatch.undo()
        importlib.reload(config)
