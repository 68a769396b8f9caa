"""hidehelper stats command - show index statistics for a chat file."""

import asyncio
import json
from pathlib import Path

import click

from hidehelper.cli.utils import load_cli_config, make_manager, open_chat
from hidehelper.config.models import HideHelperConfig
from hidehelper.core.errors import HideHelperError
from hidehelper.core.progress import get_console, stats_table
from hidehelper.index.models import IndexStats
from hidehelper.session.chat import ChatFile


async def _collect(chat: ChatFile, config: HideHelperConfig) -> IndexStats | None:
    async with make_manager(config) as manager:
        await manager.ensure_index(chat.messages)
        return manager.get_index_stats()


@click.command()
@click.argument("chat_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-worker", is_flag=True, help="Build the index in-process")
def stats_command(chat_file: Path, as_json: bool, no_worker: bool) -> None:
    """Show hidden/visible counts for CHAT_FILE."""
    chat = open_chat(chat_file)
    config = load_cli_config(chat_file, no_worker=no_worker)
    try:
        stats = asyncio.run(_collect(chat, config))
    except HideHelperError as e:
        raise click.ClickException(str(e)) from e

    data = stats.to_dict() if stats is not None else {}
    if as_json:
        click.echo(json.dumps(data))
        return
    get_console().print(stats_table(data, title=chat_file.name))
