"""Per-conversation UI state: which screen is shown and on which message."""

import threading
from dataclasses import dataclass
from enum import Enum


class Screen(Enum):
    """Screens a conversation can display."""

    NONE = "none"
    MAIN_MENU = "main_menu"
    STATUS = "status"
    PLAYERS = "players"
    SETTINGS = "settings"


@dataclass(frozen=True)
class SessionState:
    """
    Attributes:
        screen: The screen currently shown
        anchor_message_id: The message later transitions edit in place
    """

    screen: Screen = Screen.NONE
    anchor_message_id: int | None = None


NO_SESSION = SessionState()


class SessionStore:
    """
    Session states keyed by conversation id.

    Every access takes the lock, so the store can be shared between tasks
    and threads. Never hold a state across an await and write it back;
    use `set` with the fresh screen and message id instead.
    """

    def __init__(self):
        self._states: dict[int, SessionState] = {}
        self._lock = threading.Lock()

    def get(self, conversation_id: int) -> SessionState:
        """Return the conversation's state; unknown conversations are NONE."""
        with self._lock:
            return self._states.get(conversation_id, NO_SESSION)

    def set(self, conversation_id: int, screen: Screen, anchor_message_id: int) -> SessionState:
        """Replace screen and anchor together."""
        state = SessionState(screen=screen, anchor_message_id=anchor_message_id)
        with self._lock:
            self._states[conversation_id] = state
        return state

    def clear(self, conversation_id: int) -> None:
        with self._lock:
            self._states.pop(conversation_id, None)

    def is_in(self, conversation_id: int, screen: Screen) -> bool:
        return self.get(conversation_id).screen is screen

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
