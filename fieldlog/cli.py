import sys
from pathlib import Path

import click
import yaml
from beartype.typing import Any, Dict, Optional

from fieldlog import __version__
from fieldlog.config import LoggerSettings, LoggingConfig
from fieldlog.constants import FAULT_MAPPING, FIELDS_HEADER, TOOL_DESCRIPTION
from fieldlog.errors import ConfigurationError
from fieldlog.fields import FIELD_DESCRIPTIONS, FIELDS
from fieldlog.levels import parse_level
from fieldlog.request import STACK_FIELDS

CONTEXT_SETTINGS = dict(auto_envvar_prefix="FIELDLOG")


def _fail(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


def _effective_config(config_path: Optional[str], **overrides) -> Dict[str, Any]:
    if config_path and not Path(config_path).is_file():
        _fail(FAULT_MAPPING["config_file_missing"].format(file_path=config_path))
    config = LoggingConfig.load(config_path)
    config.update({key: value for key, value in overrides.items() if value is not None})
    is_valid, error = LoggingConfig.validate(config)
    if not is_valid:
        _fail(FAULT_MAPPING["invalid_config"].format(error=error))
    return config


@click.group(context_settings=CONTEXT_SETTINGS, help=TOOL_DESCRIPTION)
@click.version_option(__version__, prog_name="fieldlog")
def cli():
    pass


@cli.command(context_settings=CONTEXT_SETTINGS)
def fields():
    """List the record fields a format can use."""
    click.echo(FIELDS_HEADER)
    for name in FIELDS:
        marker = "*" if STACK_FIELDS[name] else " "
        click.echo(f" {marker} {name:<10} {FIELD_DESCRIPTIONS[name]}")


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option("-c", "--config", "config_path", metavar="PATH", help="YAML file with a 'logging' section.")
def config(config_path: Optional[str]):
    """Print the effective logging settings as YAML.

    Settings come from the config file, overridden by FIELDLOG_LOG_*
    environment variables.
    """
    settings = LoggerSettings.from_config(_effective_config(config_path))
    click.echo(yaml.safe_dump({"logging": settings.to_config()}, sort_keys=False), nl=False)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option("-c", "--config", "config_path", metavar="PATH", help="YAML file with a 'logging' section.")
@click.option("-l", "--level", default="INFO", show_default=True, help="Level of the emitted line.")
@click.argument("message")
def emit(config_path: Optional[str], level: str, message: str):
    """Write MESSAGE as one line through the configured logger.

    Examples:
        fieldlog emit "deploy finished"
        fieldlog emit -c fieldlog.yml -l WARNING "disk almost full"
    """
    try:
        log_level = parse_level(level)
        settings = LoggerSettings.from_config(_effective_config(config_path))
        logger = LoggingConfig.build_logger(settings)
    except ConfigurationError as e:
        _fail(FAULT_MAPPING["invalid_config"].format(error=e))

    with logger:
        logger.log(log_level, message)
