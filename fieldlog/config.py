"""
Configuration System - logging configuration for fieldlog

Provides centralized configuration loading from multiple sources
with precedence handling and environment variable substitution.
"""

import os
import re
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml
from beartype.typing import Any, Dict, Optional, Tuple
from serde import SerdeError, deserialize, from_dict, serialize, to_dict

from fieldlog.errors import ConfigurationError
from fieldlog.fields import resolve_fields
from fieldlog.file_handler import ReopenableFileHandler
from fieldlog.levels import LogLevel, parse_level
from fieldlog.logger import DEFAULT_FORMAT, DEFAULT_TIME_FORMAT, Logger, LoggerFactory, parse_format
from fieldlog.signals import SignalReopener

_TRUE_VALUES = ("true", "yes", "1", "on")


@serialize
@deserialize
@dataclass
class LoggerSettings:
    """Typed view of a logging configuration"""

    enabled: bool = True
    name: str = "fieldlog"
    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    time_format: str = DEFAULT_TIME_FORMAT
    output: str = "stderr"
    file_path: Optional[str] = None
    sync: bool = True
    reopen_signal: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "LoggerSettings":
        if "level" in config:
            # Numeric levels are stored by name
            config = dict(config, level=parse_level(config["level"]).name)
        try:
            return from_dict(cls, config)
        except SerdeError as e:
            raise ConfigurationError(f"Invalid logging settings: {e}") from e

    def to_config(self) -> Dict[str, Any]:
        return to_dict(self)


def signal_from_name(name: str) -> int:
    """
    Look up a signal number by name.

    Args:
        name: Signal name with or without the SIG prefix ("HUP", "SIGUSR1")

    Returns:
        Signal number

    Raises:
        ConfigurationError: If the platform has no such signal
    """
    signame = name.strip().upper()
    if not signame.startswith("SIG"):
        signame = f"SIG{signame}"
    signum = getattr(signal, signame, None)
    if not isinstance(signum, signal.Signals):
        raise ConfigurationError(f"Unknown signal '{name}'")
    return int(signum)


class LoggingConfig:
    """
    Centralized logging configuration for fieldlog.

    Reads from file, environment variables, or CLI flags with
    proper precedence handling.

    Example configuration file (fieldlog.yml):
        logging:
          name: worker
          level: INFO
          format: "%s [%s] %s:%d: %s\\ntime,levelname,filename,lineno,message"
          time_format: "%Y-%m-%d %H:%M:%S.%f"
          output: file        # stderr, stdout, file
          file_path: /var/log/worker/worker.log
          sync: false
          reopen_signal: SIGHUP
    """

    DEFAULT_CONFIG = LoggerSettings().to_config()

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from multiple sources.

        Precedence: CLI > Environment > File > Default

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary

        Example:
            config = LoggingConfig.load("fieldlog.yml")
        """
        config = cls.DEFAULT_CONFIG.copy()

        # 1. Load from file
        if config_path and Path(config_path).exists():
            file_config = cls._load_from_file(config_path)
            if file_config and "logging" in file_config:
                config.update(file_config["logging"])

        # 2. Override with environment variables
        config = cls._apply_env_overrides(config)

        # 3. Substitute environment variables in values
        config = cls._substitute_env_vars(config)

        return config

    @classmethod
    def _load_from_file(cls, config_path: str) -> Optional[Dict[str, Any]]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary or None if error
        """
        try:
            with open(config_path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            sys.stderr.write(f"Error loading config file {config_path}: {e}\n")
            return None

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides.

        Environment variables:
            FIELDLOG_LOG_ENABLED: Enable/disable logging (true, false, yes, no, 1, 0)
            FIELDLOG_LOG_NAME: Logger name
            FIELDLOG_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            FIELDLOG_LOG_FORMAT: Pattern and field list, "\\n" separated
            FIELDLOG_LOG_TIME_FORMAT: strftime format of the "time" field
            FIELDLOG_LOG_OUTPUT: Output destination (stderr, stdout, file)
            FIELDLOG_LOG_FILE: Log file path
            FIELDLOG_LOG_SYNC: Write on the calling thread (true) or a writer thread (false)
            FIELDLOG_LOG_REOPEN_SIGNAL: Signal that reopens the log file, e.g. SIGHUP

        Args:
            config: Configuration dictionary

        Returns:
            Updated configuration dictionary
        """
        # Boolean overrides
        bool_mappings = {
            "FIELDLOG_LOG_ENABLED": "enabled",
            "FIELDLOG_LOG_SYNC": "sync",
        }

        for env_var, config_key in bool_mappings.items():
            if env_var in os.environ:
                config[config_key] = os.environ[env_var].lower() in _TRUE_VALUES

        # Simple overrides
        env_mappings = {
            "FIELDLOG_LOG_NAME": "name",
            "FIELDLOG_LOG_LEVEL": "level",
            "FIELDLOG_LOG_FORMAT": "format",
            "FIELDLOG_LOG_TIME_FORMAT": "time_format",
            "FIELDLOG_LOG_OUTPUT": "output",
            "FIELDLOG_LOG_FILE": "file_path",
            "FIELDLOG_LOG_REOPEN_SIGNAL": "reopen_signal",
        }

        for env_var, config_key in env_mappings.items():
            if env_var in os.environ:
                config[config_key] = os.environ[env_var]

        # Shells cannot easily pass a newline, accept a literal "\n" instead
        if "FIELDLOG_LOG_FORMAT" in os.environ:
            config["format"] = config["format"].replace("\\n", "\n")

        return config

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} syntax.

        Example:
            file_path: /var/log/${ENVIRONMENT}/worker.log
            With ENVIRONMENT=production, becomes:
            file_path: /var/log/production/worker.log

        Args:
            config: Configuration value (string, dict, list, etc.)

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, str):
            # Substitute environment variables
            def replace_env(match):
                var_name = match.group(1)
                return os.environ.get(var_name, match.group(0))

            return re.sub(r"\$\{([^}]+)\}", replace_env, config)

        elif isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}

        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]

        else:
            return config

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Tuple[bool, str]:
        """
        Validate configuration.

        Args:
            config: Configuration dictionary

        Returns:
            Tuple of (is_valid, error_message)

        Example:
            is_valid, error = LoggingConfig.validate(config)
            if not is_valid:
                print(f"Invalid configuration: {error}")
        """
        # Validate log level, by name or number
        try:
            parse_level(config.get("level", "INFO"))
        except ConfigurationError as e:
            return False, str(e)

        # Validate flags
        for key in ("enabled", "sync"):
            if not isinstance(config.get(key, True), bool):
                return False, f"Invalid value for '{key}'. Must be true or false"

        # Validate output
        valid_outputs = ["stderr", "stdout", "file"]
        output = config.get("output", "stderr")
        if output not in valid_outputs:
            return False, f"Invalid output '{output}'. Must be one of: {', '.join(valid_outputs)}"

        # Validate file output config
        if output == "file" and not config.get("file_path"):
            return False, "file_path required when output is 'file'"

        # Validate format and its field names
        try:
            _, fields = parse_format(str(config.get("format", DEFAULT_FORMAT)))
            resolve_fields(fields)
        except ConfigurationError as e:
            return False, f"Invalid format: {e}"

        # Validate reopen signal
        reopen_signal = config.get("reopen_signal")
        if reopen_signal:
            if output != "file":
                return False, "reopen_signal requires output 'file'"
            try:
                signal_from_name(str(reopen_signal))
            except ConfigurationError as e:
                return False, str(e)

        return True, ""

    @classmethod
    def _open_output(cls, settings: LoggerSettings):
        if settings.output == "stdout":
            return sys.stdout
        if settings.output == "file":
            return ReopenableFileHandler(settings.file_path)
        return sys.stderr

    @classmethod
    def build_logger(cls, settings: LoggerSettings) -> Logger:
        """
        Build a standalone logger from settings.

        Args:
            settings: Logger settings

        Returns:
            Logger writing to the configured output; disabled settings
            produce a logger writing to os.devnull at CRITICAL
        """
        if not settings.enabled:
            return Logger(settings.name, LogLevel.CRITICAL, stream=open(os.devnull, "w"))
        return Logger(
            settings.name,
            settings.level,
            settings.format,
            settings.time_format,
            stream=cls._open_output(settings),
            sync=settings.sync,
        )

    @classmethod
    def setup_logging(cls, config_path: Optional[str] = None, **overrides) -> Optional[SignalReopener]:
        """
        Setup logging based on configuration.

        Args:
            config_path: Path to configuration file
            **overrides: Configuration overrides (e.g., level="DEBUG")

        Returns:
            Started SignalReopener when reopen_signal is configured, else None.
            Reopening through it reopens the file shared by all factory loggers.

        Raises:
            ConfigurationError: If the resulting configuration is invalid

        Example:
            LoggingConfig.setup_logging(
                config_path="fieldlog.yml",
                level="DEBUG",
                output="stdout"
            )
        """
        config = cls.load(config_path)
        config.update(overrides)

        is_valid, error = cls.validate(config)
        if not is_valid:
            raise ConfigurationError(error)
        settings = LoggerSettings.from_config(config)

        if not settings.enabled:
            # Set log level to maximum to effectively disable all logging
            LoggerFactory.configure(level="CRITICAL", stream=open(os.devnull, "w"))
            return None

        LoggerFactory.configure(
            level=settings.level,
            fmt=settings.format,
            time_format=settings.time_format,
            stream=cls._open_output(settings),
            sync=settings.sync,
        )

        if settings.reopen_signal:
            logger = LoggerFactory.get_logger(settings.name)
            return logger.reopen_on_signal(signal_from_name(settings.reopen_signal))
        return None
