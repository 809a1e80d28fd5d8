"""Discord bot that shows the live status of a channel's Minecraft server."""

import asyncio
import logging
import signal
import sys

import discord
from discord import app_commands
from dotenv import load_dotenv

from audit import AuditLogger
from commands import setup_commands
from config import (
    BotConfig,
    InvalidConfigurationError,
    MissingEnvironmentVariableError,
    validate_environment,
)
from dispatcher import Dispatcher
from minecraft import StatusProbe
from renderer import ALL_BUTTONS_KEYBOARD
from service import ServerService
from session import SessionStore
from storage import StorageError
from storage.sqlite import SqliteServerStorage
from transport import DiscordTransport

logger = logging.getLogger(__name__)


class StatusBot(discord.Client):
    """Discord bot client with command tree."""

    def __init__(self):
        intents = discord.Intents.default()
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self.transport = DiscordTransport(self)

    async def setup_hook(self):
        """Register the menu buttons and sync commands on startup."""
        self.add_view(self.transport.persistent_view(ALL_BUTTONS_KEYBOARD))
        await self.tree.sync()
        logger.info("Synced %d commands", len(self.tree.get_commands()))

    async def on_ready(self):
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)


def build_dispatcher(config: BotConfig, transport) -> tuple[Dispatcher, SqliteServerStorage]:
    """Wire storage, probe, service, sessions and audit log into a dispatcher."""
    storage = SqliteServerStorage(config.database_path)
    service = ServerService(storage, StatusProbe(), timeout=config.ping_timeout)
    dispatcher = Dispatcher(
        transport,
        service,
        SessionStore(),
        audit=AuditLogger(config.audit_database_path),
    )
    return dispatcher, storage


def _install_signal_handlers(dispatcher: Dispatcher) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, dispatcher.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C cancels asyncio.run instead
            logger.debug("Signal handler for %s not supported", sig.name)


async def run_bot(config: BotConfig) -> None:
    """Run the client and the dispatcher until a shutdown signal or a client failure."""
    client = StatusBot()
    setup_commands(client)
    dispatcher, storage = build_dispatcher(config, client.transport)
    _install_signal_handlers(dispatcher)

    try:
        async with client:
            bot_task = asyncio.create_task(client.start(config.discord_token), name="discord")
            dispatch_task = asyncio.create_task(dispatcher.run(), name="dispatcher")

            await asyncio.wait({bot_task, dispatch_task}, return_when=asyncio.FIRST_COMPLETED)
            logger.info("Shutting down...")

            dispatcher.stop()
            await dispatch_task
            if not bot_task.done():
                await client.close()
            await asyncio.wait({bot_task})

            if not bot_task.cancelled() and bot_task.exception() is not None:
                raise bot_task.exception()
    finally:
        storage.close()
        logger.info("Bot stopped")


# ============== Entry Point ==============


def main():
    """Run the bot."""
    load_dotenv()

    try:
        config = validate_environment()
    except (MissingEnvironmentVariableError, InvalidConfigurationError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    discord.utils.setup_logging(level=config.log_level, root=True)
    logger.info("Loaded config %r", config)

    try:
        asyncio.run(run_bot(config))
    except StorageError as e:
        logger.error("Storage unavailable: %s", e)
        sys.exit(1)
    except discord.LoginFailure as e:
        logger.error("Discord login failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
