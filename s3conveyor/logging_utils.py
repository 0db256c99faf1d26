"""
Logging utilities for S3 Conveyor.

Configures the root logger and named loggers from the [logging] section:

    [logging]
    level = "INFO"
    console = true
    file = "logs/conveyor.log"
    rotate = true

    [logging.logger.s3conveyor]
    level = "DEBUG"
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_ROTATE_BACKUPS = 7

# AWS SDK loggers dump every request and retry below WARNING
NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def getLogLevelByStr(levelStr: str, default: Optional[int] = None) -> Optional[int]:
    """Get log level by its name ("debug", "INFO", ...), or default if unknown."""
    level = getattr(logging, str(levelStr).upper(), None)
    if not isinstance(level, int):
        logger.error(f"Invalid log level '{levelStr}'")
        return default
    return level


def _handlerLevel(config: Dict[str, Any], key: str, fallback: int) -> int:
    if key not in config:
        return fallback
    level = getLogLevelByStr(config[key], fallback)
    return fallback if level is None else level


def _createFileHandler(logFile: str, config: Dict[str, Any]) -> logging.Handler:
    """Create a plain or midnight-rotated file handler, creating the log directory."""
    Path(logFile).parent.mkdir(parents=True, exist_ok=True)
    if not config.get("rotate", False):
        return logging.FileHandler(logFile, encoding="utf-8")

    return TimedRotatingFileHandler(
        filename=logFile,
        when="midnight",
        interval=1,
        backupCount=int(config.get("rotate-backups", DEFAULT_ROTATE_BACKUPS)),
        encoding="utf-8",
    )


def configureLogger(localLogger: logging.Logger, config: Dict[str, Any]) -> None:
    """
    Configure one logger from its config table.

    Keys: level, propagate, format, console, console-level, file, file-level,
    rotate, rotate-backups. Existing handlers of the logger are replaced.
    """
    if "propagate" in config:
        localLogger.propagate = bool(config["propagate"])

    if "level" in config:
        level = getLogLevelByStr(config["level"])
        if level is not None:
            localLogger.setLevel(level)
    effectiveLevel = localLogger.getEffectiveLevel()

    for handler in localLogger.handlers[:]:
        localLogger.removeHandler(handler)

    formatter = logging.Formatter(config.get("format", DEFAULT_LOG_FORMAT))
    handlers: Dict[str, logging.Handler] = {}

    if config.get("console", False):
        handlers["console"] = logging.StreamHandler()
        handlers["console"].setLevel(_handlerLevel(config, "console-level", effectiveLevel))

    if "file" in config:
        try:
            handlers["file"] = _createFileHandler(config["file"], config)
            handlers["file"].setLevel(_handlerLevel(config, "file-level", effectiveLevel))
        except OSError as e:
            logger.error(f"Failed to setup file logging for {localLogger.name}: {e}")

    for kind, handler in handlers.items():
        handler.setFormatter(formatter)
        localLogger.addHandler(handler)
        logger.info(f"Logging {localLogger.name} to {kind}, logLevel: {handler.level}")


def initLogging(config: Dict[str, Any]) -> None:
    """Configure logging from the [logging] config section."""
    rootLogger = logging.getLogger()
    rootLogger.setLevel(logging.INFO)
    configureLogger(rootLogger, config)
    rootLevel = rootLogger.getEffectiveLevel()

    if rootLevel < logging.WARNING:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Per-logger tables come last so they can override the defaults above
    for loggerName, loggerConfig in config.get("logger", {}).items():
        logger.debug(f"Configuring logger '{loggerName}' with config {loggerConfig}")
        configureLogger(logging.getLogger(loggerName), loggerConfig)

    logger.info(f"Logging configured: root level={logging.getLevelName(rootLevel)}")
