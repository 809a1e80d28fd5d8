"""Slash commands for the server status menu."""

import discord
from discord import app_commands

from transport import EventKind


def setup(client):
    """Register /mss, /mss-set and /mss-help."""

    @client.tree.command(name="mss", description="Open the Minecraft server status menu")
    async def mss(interaction: discord.Interaction):
        """Open the main menu in this channel."""
        await client.transport.submit_command(interaction, EventKind.OPEN_MENU)

    @client.tree.command(name="mss-set", description="Set the Minecraft server for this channel")
    @app_commands.describe(
        address="Server address as host or host:port",
        name="Display name for the server (optional)",
    )
    async def mss_set(interaction: discord.Interaction, address: str, name: str | None = None):
        """Configure the server. Only accepted while the settings screen is open."""
        argument = f"{address} {name}" if name else address
        await client.transport.submit_command(interaction, EventKind.SET_CONFIG, argument)

    @client.tree.command(name="mss-help", description="Show help for the server status bot")
    async def mss_help(interaction: discord.Interaction):
        await client.transport.submit_command(interaction, EventKind.HELP)
