"""Command modules for the shopctl CLI.

This module exports the config command group and the top-level sync
commands that are registered with the main application.
"""

from .config import app as config_app
from .sync import init, list_resources, publish, pull, push, serve

__all__ = [
    "config_app",
    "init",
    "list_resources",
    "publish",
    "pull",
    "push",
    "serve",
]
