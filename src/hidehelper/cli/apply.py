"""hidehelper apply command - hide all but the last N messages of a chat file."""

import asyncio
import json
from pathlib import Path

import click

from hidehelper.cli.utils import load_cli_config, make_manager, open_chat
from hidehelper.config.models import HideHelperConfig
from hidehelper.config.user_config import (
    HideSettings,
    MemorySettingsStore,
    SettingsStore,
    YamlSettingsStore,
    load_hide_settings,
)
from hidehelper.core.errors import HideHelperError
from hidehelper.core.progress import pluralize, spinner, status
from hidehelper.index.models import IndexStats
from hidehelper.session.chat import ChatFile, save_chat
from hidehelper.session.controller import HideController, flag_renderer, merge_updates

SETTINGS_FILE = Path(".hidehelper") / "settings.yaml"


async def _apply(
    chat: ChatFile,
    keep_last: int | None,
    config: HideHelperConfig,
    persist: bool,
) -> tuple[int, IndexStats | None]:
    settings_path = chat.path.parent / SETTINGS_FILE
    if settings_path.exists():
        initial = load_hide_settings(settings_path)
    else:
        initial = HideSettings(hide_last_n=config.hide.hide_last_n)

    store: SettingsStore
    if persist:
        store = YamlSettingsStore(settings_path)
        store.save(initial)
    else:
        store = MemorySettingsStore(initial)

    async with make_manager(config) as manager:
        controller = HideController(
            manager=manager,
            settings_store=store,
            render=flag_renderer(chat.messages, manager),
        )
        if keep_last is not None:
            controller.set_hide_last_n(keep_last)
        results = await controller.apply_hide_settings(chat.messages)
        return len(merge_updates(results)), manager.get_index_stats()


@click.command()
@click.argument("chat_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-n",
    "--keep-last",
    type=click.IntRange(min=0),
    default=None,
    help="Messages to keep visible (0 unhides all). Default: saved setting, then config.",
)
@click.option("--write", is_flag=True, help="Rewrite is_system flags in CHAT_FILE")
@click.option("--save-settings", is_flag=True, help="Persist the setting in .hidehelper/")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-worker", is_flag=True, help="Run index work in-process")
def apply_command(
    chat_file: Path,
    keep_last: int | None,
    write: bool,
    save_settings: bool,
    as_json: bool,
    no_worker: bool,
) -> None:
    """Hide every message of CHAT_FILE except the last N."""
    chat = open_chat(chat_file)
    config = load_cli_config(chat_file, no_worker=no_worker)
    try:
        if as_json:
            changed, stats = asyncio.run(_apply(chat, keep_last, config, save_settings))
        else:
            with spinner(f"Applying hide settings to {pluralize(len(chat), 'message')}"):
                changed, stats = asyncio.run(_apply(chat, keep_last, config, save_settings))
    except HideHelperError as e:
        raise click.ClickException(str(e)) from e

    if write:
        save_chat(chat)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "changed": changed,
                    "written": write,
                    **(stats.to_dict() if stats is not None else {}),
                }
            )
        )
        return

    status(f"{pluralize(changed, 'visibility change')}", style="success")
    if stats is not None:
        status(f"Hidden: {stats.hidden_count}  Visible: {stats.visible_count}", indent=2)
    if write:
        status(f"Wrote {chat_file}", style="success")
    elif changed:
        status("Dry run - pass --write to update the file", style="warning")
