"""Chat session: chat files and the hide policy controller."""

from hidehelper.session.chat import ChatFile, load_chat, save_chat
from hidehelper.session.controller import HideController, flag_renderer, merge_updates

__all__ = [
    "ChatFile",
    "HideController",
    "flag_renderer",
    "load_chat",
    "merge_updates",
    "save_chat",
]
