"""Command modules for the Discord bot."""

from commands.menu import setup as setup_menu


def setup_commands(client):
    """Register all command modules with the bot client."""
    setup_menu(client)
