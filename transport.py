"""Chat transport: neutral event/keyboard types and the Discord implementation."""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import discord
from discord import ui

logger = logging.getLogger(__name__)

CUSTOM_ID_PREFIX = "mss:"

# Rendered content of recently touched messages, for unmodified-edit detection
CONTENT_CACHE_SIZE = 1024


class EventKind(Enum):
    """Inbound events. Callback values double as button ids."""

    OPEN_MENU = "mss"
    SET_CONFIG = "mss-set"
    HELP = "mss-help"
    SHOW_STATUS = "status"
    SHOW_SETTINGS = "settings"
    SHOW_PLAYERS = "players"
    BACK = "back"
    REFRESH = "refresh"

    @property
    def is_callback(self) -> bool:
        return self in CALLBACKS


CALLBACKS = frozenset({
    EventKind.SHOW_STATUS,
    EventKind.SHOW_SETTINGS,
    EventKind.SHOW_PLAYERS,
    EventKind.BACK,
    EventKind.REFRESH,
})


@dataclass(frozen=True)
class Button:
    label: str
    callback: EventKind


Keyboard = tuple[tuple[Button, ...], ...]


class EditResult(Enum):
    OK = "ok"
    UNMODIFIED = "unmodified"


class TransportError(Exception):
    """Raised when a message cannot be sent or edited."""

    pass


@dataclass
class InboundEvent:
    """
    One command or button press.

    Attributes:
        conversation_id: Channel the event came from
        kind: What happened
        argument: Raw command argument text (commands only)
        message_id: Message carrying the pressed button (callbacks only)
        user_id: Who triggered the event, for auditing
        handled: Set by the dispatcher once the event has been processed
    """

    conversation_id: int
    kind: EventKind
    argument: str = ""
    message_id: int | None = None
    user_id: int | None = None
    handled: asyncio.Event = field(default_factory=asyncio.Event, repr=False)


class Transport(Protocol):
    async def next_event(self) -> InboundEvent: ...

    async def send_message(
        self, conversation_id: int, text: str, keyboard: Keyboard | None = None
    ) -> int:
        """Send a message and return its id."""
        ...

    async def edit_message(
        self, conversation_id: int, message_id: int, text: str, keyboard: Keyboard | None = None
    ) -> EditResult:
        """Edit a message; UNMODIFIED when the content is already identical."""
        ...


# ============== Discord ==============


def custom_id(kind: EventKind) -> str:
    return f"{CUSTOM_ID_PREFIX}{kind.value}"


def parse_custom_id(value: str | None) -> EventKind | None:
    """Map a button custom id back to its callback, or None if it is not ours."""
    if not value or not value.startswith(CUSTOM_ID_PREFIX):
        return None
    try:
        kind = EventKind(value[len(CUSTOM_ID_PREFIX):])
    except ValueError:
        return None
    return kind if kind.is_callback else None


class KeyboardView(ui.View):
    """Buttons for one keyboard; presses are forwarded to the transport."""

    def __init__(self, keyboard: Keyboard, transport: "DiscordTransport"):
        super().__init__(timeout=None)
        self.transport = transport
        for row_index, row in enumerate(keyboard):
            for button in row:
                item = ui.Button(
                    label=button.label,
                    style=discord.ButtonStyle.secondary,
                    custom_id=custom_id(button.callback),
                    row=row_index,
                )
                item.callback = self._make_callback(button.callback)
                self.add_item(item)

    def _make_callback(self, kind: EventKind):
        async def callback(interaction: discord.Interaction):
            await self.transport.submit_callback(interaction, kind)

        return callback


class DiscordTransport:
    """
    Transport over a discord.py client.

    Slash commands and button presses are queued as InboundEvents. Discord
    has no "message not modified" error, so the last content sent to each
    message is remembered and identical edits report UNMODIFIED without a
    request.
    """

    def __init__(self, client: discord.Client):
        self.client = client
        self._events: asyncio.Queue[InboundEvent] = asyncio.Queue()
        self._content: OrderedDict[int, tuple[str, Keyboard | None]] = OrderedDict()

    def persistent_view(self, keyboard: Keyboard) -> KeyboardView:
        """View to register at start-up so buttons on older messages still route."""
        return KeyboardView(keyboard, self)

    async def next_event(self) -> InboundEvent:
        return await self._events.get()

    def pending(self) -> int:
        return self._events.qsize()

    async def submit_command(
        self, interaction: discord.Interaction, kind: EventKind, argument: str = ""
    ) -> None:
        """Queue a slash command and hold its acknowledgement until it is handled."""
        await interaction.response.defer(ephemeral=True, thinking=True)
        event = InboundEvent(
            conversation_id=interaction.channel_id,
            kind=kind,
            argument=argument,
            user_id=interaction.user.id,
        )
        await self._events.put(event)
        await event.handled.wait()
        try:
            await interaction.delete_original_response()
        except discord.HTTPException as e:
            logger.debug("Could not delete command acknowledgement: %s", e)

    async def submit_callback(self, interaction: discord.Interaction, kind: EventKind) -> None:
        """Queue a button press."""
        await interaction.response.defer()
        event = InboundEvent(
            conversation_id=interaction.channel_id,
            kind=kind,
            message_id=interaction.message.id if interaction.message else None,
            user_id=interaction.user.id,
        )
        await self._events.put(event)

    async def _channel(self, conversation_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(conversation_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(conversation_id)
            except discord.HTTPException as e:
                raise TransportError(f"channel {conversation_id} unavailable: {e}") from e
        return channel

    def _remember(self, message_id: int, text: str, keyboard: Keyboard | None) -> None:
        self._content[message_id] = (text, keyboard)
        self._content.move_to_end(message_id)
        while len(self._content) > CONTENT_CACHE_SIZE:
            self._content.popitem(last=False)

    def _view(self, keyboard: Keyboard | None) -> KeyboardView | None:
        return KeyboardView(keyboard, self) if keyboard else None

    async def send_message(
        self, conversation_id: int, text: str, keyboard: Keyboard | None = None
    ) -> int:
        channel = await self._channel(conversation_id)
        view = self._view(keyboard)
        try:
            if view is None:
                message = await channel.send(content=text)
            else:
                message = await channel.send(content=text, view=view)
        except discord.HTTPException as e:
            raise TransportError(f"failed to send message: {e}") from e

        self._remember(message.id, text, keyboard)
        return message.id

    async def edit_message(
        self, conversation_id: int, message_id: int, text: str, keyboard: Keyboard | None = None
    ) -> EditResult:
        if self._content.get(message_id) == (text, keyboard):
            return EditResult.UNMODIFIED

        channel = await self._channel(conversation_id)
        try:
            await channel.get_partial_message(message_id).edit(
                content=text, view=self._view(keyboard)
            )
        except discord.HTTPException as e:
            raise TransportError(f"failed to edit message {message_id}: {e}") from e

        self._remember(message_id, text, keyboard)
        return EditResult.OK
