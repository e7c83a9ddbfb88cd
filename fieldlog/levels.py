"""
Log levels and their textual names.

Levels follow the numbering used by Python's logging module and syslog
bridges, so numeric values can be compared and stored directly.
"""

from enum import IntEnum

from beartype.typing import Dict, Union

from fieldlog.errors import ConfigurationError


class LogLevel(IntEnum):
    """Standard log levels compatible with Python logging"""

    NOTSET = 0
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


LEVEL_NAMES: Dict[int, str] = {level.value: level.name for level in LogLevel}


def level_name(level: int) -> str:
    """
    Textual name of a level number.

    Args:
        level: Level number

    Returns:
        Name from LEVEL_NAMES, or "Level <n>" for numbers outside the table
    """
    return LEVEL_NAMES.get(int(level), f"Level {int(level)}")


def parse_level(value: Union[LogLevel, int, str]) -> LogLevel:
    """
    Convert a level name or number into a LogLevel.

    Args:
        value: LogLevel, level number (as int or digits) or case-insensitive
            level name

    Returns:
        Matching LogLevel

    Raises:
        ConfigurationError: If the value names no known level
    """
    if isinstance(value, LogLevel):
        return value
    if isinstance(value, int):
        try:
            return LogLevel(value)
        except ValueError:
            raise ConfigurationError(f"Invalid log level number: {value}") from None
    level_upper = str(value).strip().upper()
    if level_upper.isdecimal():
        return parse_level(int(level_upper))
    if level_upper in LogLevel.__members__:
        return LogLevel[level_upper]
    raise ConfigurationError(
        f"Invalid log level: {value}. Must be one of: {', '.join(LogLevel.__members__)}"
    )
