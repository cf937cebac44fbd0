"""
app/__init__.py — configuration entry point.

Pattern: configure(config_name) resolves a config class, validates it and
         applies logging. Nothing is configured at import time, which allows:
           - Importing the services from a web layer that owns logging itself
           - Tests switching to TestingConfig without touching the environment

Responsibilities:
  1. Resolve the config class from config_by_name[config_name]
  2. Fail fast on an invalid config (validate_config)
  3. Configure the "groupledger" logger hierarchy via logging.config

Services never call configure(); they read ActiveConfig unless a config class
is passed to them explicitly.
"""

from __future__ import annotations

import logging.config

from groupledger.config import BaseConfig, config_by_name, validate_config


def configure(config_name: str = "development") -> type[BaseConfig]:
    """
    Resolves, validates and applies a configuration.

    Args:
        config_name: One of "development", "testing", "production".
                     Unknown names fall back to "development".

    Returns:
        The config class. Pass it to the settlement functions as `config=`.

    Raises:
        ValueError: the resolved config is invalid (see validate_config).
    """
    config_class = config_by_name.get(config_name, config_by_name["development"])
    validate_config(config_class)
    _configure_logging(config_class)
    return config_class


def _configure_logging(config: type[BaseConfig]) -> None:
    """
    Attaches a single stderr handler to the "groupledger" logger.

    Only the package logger is touched so that an embedding application keeps
    control of the root logger and its own handlers.
    """
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": config.LOG_FORMAT},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "groupledger": {
                "handlers": ["stderr"],
                "level": config.LOG_LEVEL.upper(),
                "propagate": True,
            },
        },
    })
