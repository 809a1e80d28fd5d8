"""Screen transitions: maps inbound events to handlers and renders the result."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Awaitable, Callable

import renderer
from address import AddressError, parse_address, split_config_argument
from audit import AuditLogger
from service import ServerService
from session import SessionState, SessionStore, Screen
from storage import StorageError
from transport import EditResult, EventKind, InboundEvent, Keyboard, Transport, TransportError

logger = logging.getLogger(__name__)


class Action(Enum):
    SEND_MAIN_MENU = "send_main_menu"
    SEND_HELP = "send_help"
    SHOW_MAIN_MENU = "show_main_menu"
    SHOW_STATUS = "show_status"
    SHOW_PLAYERS = "show_players"
    SHOW_SETTINGS = "show_settings"
    SET_CONFIG = "set_config"
    REJECT = "reject"


class Rejection(Enum):
    WRONG_SCREEN = "wrong_screen"
    STALE_MENU = "stale_menu"


@dataclass(frozen=True)
class Transition:
    """
    Outcome of an event on a screen.

    `target` is the screen after a successful render; None keeps the
    current one.
    """

    action: Action
    target: Screen | None = None
    rejection: Rejection | None = None

    @property
    def rejected(self) -> bool:
        return self.action is Action.REJECT


WRONG_SCREEN = Transition(Action.REJECT, rejection=Rejection.WRONG_SCREEN)
STALE_MENU = Transition(Action.REJECT, rejection=Rejection.STALE_MENU)

_ALL = tuple(Screen)

# (event, screens it applies on, transition)
_RULES: list[tuple[EventKind, tuple[Screen, ...], Transition]] = [
    (EventKind.OPEN_MENU, _ALL, Transition(Action.SEND_MAIN_MENU, Screen.MAIN_MENU)),
    (EventKind.HELP, _ALL, Transition(Action.SEND_HELP)),
    (
        EventKind.SHOW_STATUS,
        (Screen.MAIN_MENU, Screen.STATUS),
        Transition(Action.SHOW_STATUS, Screen.STATUS),
    ),
    (EventKind.REFRESH, (Screen.STATUS,), Transition(Action.SHOW_STATUS, Screen.STATUS)),
    (
        EventKind.SHOW_PLAYERS,
        (Screen.MAIN_MENU, Screen.STATUS, Screen.PLAYERS),
        Transition(Action.SHOW_PLAYERS, Screen.PLAYERS),
    ),
    (
        EventKind.SHOW_SETTINGS,
        (Screen.MAIN_MENU, Screen.SETTINGS),
        Transition(Action.SHOW_SETTINGS, Screen.SETTINGS),
    ),
    (
        EventKind.BACK,
        (Screen.STATUS, Screen.SETTINGS, Screen.PLAYERS),
        Transition(Action.SHOW_MAIN_MENU, Screen.MAIN_MENU),
    ),
    (EventKind.SET_CONFIG, (Screen.SETTINGS,), Transition(Action.SET_CONFIG, Screen.SETTINGS)),
]


def _build_table() -> MappingProxyType:
    table: dict[tuple[Screen, EventKind], Transition] = {}
    for screen in Screen:
        for kind in EventKind:
            table[(screen, kind)] = STALE_MENU if kind.is_callback else WRONG_SCREEN
    for kind, screens, transition in _RULES:
        for screen in screens:
            table[(screen, kind)] = transition
    return MappingProxyType(table)


# Total over Screen x EventKind
TRANSITIONS = _build_table()


def resolve(screen: Screen, kind: EventKind) -> Transition:
    return TRANSITIONS[(screen, kind)]


Handler = Callable[[InboundEvent, SessionState, Transition], Awaitable[None]]


class Dispatcher:
    """
    Consumes events one at a time and drives each conversation's screens.

    The shutdown event doubles as the cancellation signal for status probes,
    so `stop()` unblocks a handler that is waiting on a slow server.
    """

    def __init__(
        self,
        transport: Transport,
        service: ServerService,
        sessions: SessionStore,
        audit: AuditLogger | None = None,
    ):
        self._transport = transport
        self._service = service
        self._sessions = sessions
        self._audit = audit
        self._shutdown = asyncio.Event()
        self._handlers: dict[Action, Handler] = {
            Action.SEND_MAIN_MENU: self._send_main_menu,
            Action.SEND_HELP: self._send_help,
            Action.SHOW_MAIN_MENU: self._show_main_menu,
            Action.SHOW_STATUS: self._show_status,
            Action.SHOW_PLAYERS: self._show_players,
            Action.SHOW_SETTINGS: self._show_settings,
            Action.SET_CONFIG: self._set_config,
            Action.REJECT: self._reject,
        }

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    def stop(self) -> None:
        """Ask the loop to exit and abandon any probe in flight."""
        self._shutdown.set()

    async def run(self) -> None:
        logger.info("Dispatcher started")
        while not self._shutdown.is_set():
            event = await self._next_event()
            if event is None:
                break
            try:
                await self.dispatch(event)
            finally:
                event.handled.set()
        logger.info("Dispatcher stopped")

    async def _next_event(self) -> InboundEvent | None:
        """Wait for the next event, or None once shutdown is requested."""
        receive = asyncio.create_task(self._transport.next_event())
        stop = asyncio.create_task(self._shutdown.wait())
        try:
            done, pending = await asyncio.wait(
                {receive, stop}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            receive.cancel()
            stop.cancel()
            raise

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if receive in done:
            return receive.result()
        return None

    async def dispatch(self, event: InboundEvent) -> SessionState:
        """Handle one event. Failures are logged and contained to this event."""
        before = self._sessions.get(event.conversation_id)
        transition = resolve(before.screen, event.kind)

        if (
            not transition.rejected
            and event.kind.is_callback
            and event.message_id is not None
            and event.message_id != before.anchor_message_id
        ):
            transition = STALE_MENU

        logger.debug(
            "Conversation %d: %s on %s -> %s",
            event.conversation_id, event.kind.value, before.screen.value, transition.action.value,
        )

        error: str | None = None
        try:
            await self._handlers[transition.action](event, before, transition)
        except TransportError as e:
            error = str(e)
            logger.error("Transport failure in conversation %d: %s", event.conversation_id, e)
        except StorageError as e:
            error = str(e)
            logger.error("Storage failure in conversation %d: %s", event.conversation_id, e)
            await self._notify(event.conversation_id, renderer.STORAGE_FAILURE)
        except Exception as e:
            error = str(e)
            logger.exception(
                "Unexpected error handling %s in conversation %d",
                event.kind.value, event.conversation_id,
            )

        after = self._sessions.get(event.conversation_id)
        if self._audit is not None:
            self._audit.log_event(
                conversation_id=event.conversation_id,
                user_id=event.user_id,
                event=event.kind.value,
                screen_before=before.screen.value,
                screen_after=after.screen.value,
                success=error is None and not transition.rejected,
                error_message=error or (transition.rejection.value if transition.rejected else None),
            )
        return after

    # ============== Rendering ==============

    async def _notify(self, conversation_id: int, text: str) -> None:
        """Send a standalone notice; failures are logged, not raised."""
        try:
            await self._transport.send_message(conversation_id, text)
        except TransportError as e:
            logger.error("Failed to send notice to conversation %d: %s", conversation_id, e)

    async def _edit_anchor(
        self, event: InboundEvent, state: SessionState, screen: Screen, text: str, keyboard: Keyboard
    ) -> None:
        """Edit the anchor message in place and record the new screen."""
        anchor = state.anchor_message_id
        result = await self._transport.edit_message(event.conversation_id, anchor, text, keyboard)
        if result is EditResult.UNMODIFIED:
            logger.debug("Message %d in conversation %d unchanged", anchor, event.conversation_id)
        self._sessions.set(event.conversation_id, screen, anchor)

    # ============== Handlers ==============

    async def _send_main_menu(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        text, keyboard = renderer.render_main_menu()
        message_id = await self._transport.send_message(event.conversation_id, text, keyboard)
        self._sessions.set(event.conversation_id, transition.target, message_id)

    async def _send_help(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        await self._transport.send_message(event.conversation_id, renderer.render_help())

    async def _show_main_menu(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        text, keyboard = renderer.render_main_menu()
        await self._edit_anchor(event, state, transition.target, text, keyboard)

    async def _show_status(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        result = await self._service.get_status(event.conversation_id, cancel_event=self._shutdown)
        text, keyboard = renderer.render_status(result)
        await self._edit_anchor(event, state, transition.target, text, keyboard)

    async def _show_players(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        result = await self._service.get_status(event.conversation_id, cancel_event=self._shutdown)
        text, keyboard = renderer.render_players(result)
        await self._edit_anchor(event, state, transition.target, text, keyboard)

    async def _show_settings(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        record = self._service.get_config(event.conversation_id)
        text, keyboard = renderer.render_config(record)
        await self._edit_anchor(event, state, transition.target, text, keyboard)

    async def _set_config(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        cid = event.conversation_id
        if not event.argument.strip():
            await self._notify(cid, renderer.render_set_config_usage())
            return

        try:
            raw_address, name = split_config_argument(event.argument)
            address = parse_address(raw_address, display_name=name)
        except AddressError as e:
            logger.info("Rejected address %r in conversation %d: %s", event.argument, cid, e)
            await self._notify(cid, renderer.render_invalid_address(e))
            return

        try:
            record = self._service.set_config(cid, address.host, address.port, address.display_name)
        except StorageError as e:
            logger.error("Failed to save server for conversation %d: %s", cid, e)
            await self._notify(cid, renderer.STORAGE_FAILURE)
            return

        text, keyboard = renderer.render_config(record)
        await self._edit_anchor(event, state, transition.target, text, keyboard)
        await self._notify(cid, renderer.CONFIG_SAVED)

    async def _reject(self, event: InboundEvent, state: SessionState, transition: Transition) -> None:
        logger.info(
            "Rejected %s on %s in conversation %d (%s)",
            event.kind.value, state.screen.value, event.conversation_id, transition.rejection.value,
        )
        if transition.rejection is Rejection.WRONG_SCREEN:
            await self._notify(event.conversation_id, renderer.NOT_IN_SETTINGS)
        else:
            await self._notify(event.conversation_id, renderer.STALE_MENU)
