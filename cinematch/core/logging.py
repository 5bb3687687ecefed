"""Logging configuration for CineMatch."""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Optional

import yaml


def setup_logging(
    config_path: Optional[str] = None,
    default_level: int = logging.INFO,
    env_key: str = "LOG_CFG",
) -> None:
    """
    Setup logging configuration from YAML file.

    Args:
        config_path: Path to logging config file
        default_level: Default logging level if config file not found
        env_key: Environment variable name for config path override
    """
    path_str = os.getenv(env_key, config_path)

    if path_str is None:
        environment = os.getenv("ENVIRONMENT", "development").lower()
        config_dir = Path(__file__).parent.parent.parent / "config"

        env_config = config_dir / f"logging.{environment}.yaml"
        if env_config.exists():
            path = env_config
        else:
            path = config_dir / "logging.yaml"
    else:
        path = Path(path_str)

    if path.exists():
        try:
            with open(path, "r") as f:
                config = yaml.safe_load(f.read())
            logging.config.dictConfig(config)

            logger = logging.getLogger(__name__)
            logger.info(f"Logging configured from {path}")

        except (OSError, ValueError, yaml.YAMLError) as e:
            logging.basicConfig(level=default_level)
            logger = logging.getLogger(__name__)
            logger.warning(f"Failed to load logging config, using basic config: {e}")
    else:
        logging.basicConfig(level=default_level)
        logger = logging.getLogger(__name__)
        logger.warning(f"Logging config file not found at {path}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def configure_sqlalchemy_logging(echo: bool = False) -> None:
    """Route SQL statement logging through the standard logger tree."""
    level = logging.INFO if echo else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(level)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def log_startup_info() -> None:
    """Log application startup information."""
    logger = get_logger(__name__)
    logger.info("=" * 50)
    logger.info("CineMatch Backend Starting Up")
    logger.info("=" * 50)
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info("=" * 50)


def log_shutdown_info() -> None:
    """Log application shutdown information."""
    logger = get_logger(__name__)
    logger.info("CineMatch Backend Shutting Down")
