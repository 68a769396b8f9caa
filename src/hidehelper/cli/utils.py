"""CLI utilities."""

import logging
from pathlib import Path

import click

from hidehelper.config.loader import load_config
from hidehelper.config.models import HideHelperConfig, LoggingConfig, LogOutputConfig
from hidehelper.core.errors import HideHelperError
from hidehelper.core.logging import configure_logging
from hidehelper.index.manager import IndexManager
from hidehelper.session.chat import ChatFile, load_chat

_CONSOLE_DESTINATIONS = ("stderr", "stdout")


def load_cli_config(chat_path: Path, *, no_worker: bool) -> HideHelperConfig:
    """Resolve config next to the chat file, honouring --no-worker and -v.

    The ``logging`` section is applied before returning.

    Raises:
        click.ClickException: On invalid configuration
    """
    try:
        config = load_config(chat_path.parent)
    except HideHelperError as e:
        raise click.ClickException(str(e)) from e
    if no_worker:
        config.index.use_worker = False

    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx is not None and ctx.obj and ctx.obj.get("verbose"))
    configure_cli_logging(config.logging, verbose=verbose)
    return config


def configure_cli_logging(config: LoggingConfig, *, verbose: bool) -> None:
    """Apply a logging config for a CLI run.

    ``verbose`` lowers every output to DEBUG. Otherwise console outputs are
    held at WARNING so command output stays readable; file outputs keep
    their configured levels.
    """
    if verbose:
        outputs = [output.model_copy(update={"level": "DEBUG"}) for output in config.outputs]
        config = config.model_copy(update={"level": "DEBUG", "outputs": outputs})
    else:
        outputs = [_quiet_console(output, config.level) for output in config.outputs]
        config = config.model_copy(update={"outputs": outputs})
    configure_logging(config=config)


def _quiet_console(output: LogOutputConfig, root_level: str) -> LogOutputConfig:
    if output.destination not in _CONSOLE_DESTINATIONS:
        return output
    if logging.getLevelName(output.level or root_level) < logging.WARNING:
        return output.model_copy(update={"level": "WARNING"})
    return output


def open_chat(path: Path) -> ChatFile:
    try:
        return load_chat(path)
    except HideHelperError as e:
        raise click.ClickException(str(e)) from e


def make_manager(config: HideHelperConfig) -> IndexManager:
    return IndexManager(config=config.index)
