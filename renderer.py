"""Message text and keyboards for every screen."""

from address import AddressError
from service import StatusResult
from storage import ServerRecord
from transport import Button, EventKind, Keyboard

# Characters with markup meaning; each is prefixed with a backslash
MARKDOWN_SPECIAL = "_*[]()~`>#+-=|{}.!"

_ESCAPE_TABLE = str.maketrans({ch: "\\" + ch for ch in MARKDOWN_SPECIAL})

TITLE = "🎮 **Minecraft Server Status**"

# ============== Keyboards ==============

MAIN_MENU_KEYBOARD: Keyboard = (
    (
        Button("📊 Status", EventKind.SHOW_STATUS),
        Button("👥 Players", EventKind.SHOW_PLAYERS),
        Button("⚙️ Settings", EventKind.SHOW_SETTINGS),
    ),
)

STATUS_KEYBOARD: Keyboard = (
    (Button("🔄 Refresh", EventKind.REFRESH), Button("👥 Players", EventKind.SHOW_PLAYERS)),
    (Button("◀️ Back", EventKind.BACK),),
)

BACK_KEYBOARD: Keyboard = ((Button("◀️ Back", EventKind.BACK),),)

PLAYERS_KEYBOARD = BACK_KEYBOARD
SETTINGS_KEYBOARD = BACK_KEYBOARD

# Every callback on one row, for routing presses on messages from before a restart
ALL_BUTTONS_KEYBOARD: Keyboard = (
    (
        Button("📊 Status", EventKind.SHOW_STATUS),
        Button("👥 Players", EventKind.SHOW_PLAYERS),
        Button("⚙️ Settings", EventKind.SHOW_SETTINGS),
        Button("🔄 Refresh", EventKind.REFRESH),
        Button("◀️ Back", EventKind.BACK),
    ),
)

# ============== Notices ==============

SET_CONFIG_USAGE = (
    "Usage: `/mss-set <host>[:<port>] [name]`\n"
    "Example: `/mss-set mc.example.com:25565 My Server`"
)

NOT_IN_SETTINGS = (
    "⚠️ This command is only available from the settings menu.\n"
    "Use `/mss` and press **Settings**."
)

STALE_MENU = "⚠️ This menu is out of date. Use `/mss` to open a new one."

CONFIG_SAVED = "✅ Server saved!"

STORAGE_FAILURE = "❌ Could not save the server. Please try again later."


def escape_markdown(text: str) -> str:
    """
    Backslash-escape every markup character in `text`.

    Not idempotent: escaping already escaped text puts a second backslash
    before each special character, so only ever apply it to raw text.
    """
    return text.translate(_ESCAPE_TABLE)


def render_invalid_address(error: AddressError) -> str:
    return f"❌ Invalid address: {escape_markdown(str(error))}\n\n{SET_CONFIG_USAGE}"


def render_set_config_usage() -> str:
    return f"❌ Invalid format.\n\n{SET_CONFIG_USAGE}"


# ============== Screens ==============


def render_main_menu() -> tuple[str, Keyboard]:
    return f"{TITLE}\n\nChoose an action:", MAIN_MENU_KEYBOARD


def render_help() -> str:
    return (
        "📖 **Help**\n\n"
        "**Commands:**\n"
        "`/mss` opens the main menu\n"
        "`/mss-set <host>[:<port>] [name]` sets the server (from the settings menu)\n"
        "`/mss-help` shows this message\n\n"
        "**Example:**\n"
        "`/mss-set mc.example.com:25565 My Server`"
    )


def _not_configured() -> str:
    return (
        "⚠️ No server configured.\n\n"
        "Open **Settings** and use `/mss-set` to add one."
    )


def render_status(result: StatusResult) -> tuple[str, Keyboard]:
    """Status screen for a lookup result."""
    if result.record is None:
        return _not_configured(), STATUS_KEYBOARD

    record = result.record
    name = escape_markdown(record.label)

    if not result.online:
        text = (
            f"🔴 **{name}**\n\n"
            f"Address: {escape_markdown(record.address)}\n"
            "Status: Offline"
        )
        return text, STATUS_KEYBOARD

    probe = result.probe
    lines = [
        f"🟢 **{name}**",
        "",
        f"Address: {escape_markdown(record.address)}",
        f"Version: {escape_markdown(probe.version)}",
        f"Online: {probe.players_online}/{probe.players_max}",
    ]
    if probe.sample:
        lines += ["", "👥 **Players online:**"]
        lines += [f"• {escape_markdown(player)}" for player in probe.sample]

    return "\n".join(lines), STATUS_KEYBOARD


def render_players(result: StatusResult) -> tuple[str, Keyboard]:
    """Players screen: the sampled player names, or why there are none."""
    if result.record is None:
        return _not_configured(), PLAYERS_KEYBOARD

    name = escape_markdown(result.record.label)
    if not result.online:
        return f"🔴 **{name}** is offline.", PLAYERS_KEYBOARD

    probe = result.probe
    header = f"👥 **{name}**: {probe.players_online}/{probe.players_max} online"
    if not probe.sample:
        if probe.players_online:
            return f"{header}\n\nThe server does not share its player list.", PLAYERS_KEYBOARD
        return f"{header}\n\nNobody is playing right now.", PLAYERS_KEYBOARD

    names = "\n".join(f"• {escape_markdown(player)}" for player in probe.sample)
    hidden = probe.players_online - len(probe.sample)
    footer = f"\n…and {hidden} more" if hidden > 0 else ""
    return f"{header}\n\n{names}{footer}", PLAYERS_KEYBOARD


def render_config(record: ServerRecord | None) -> tuple[str, Keyboard]:
    """Settings screen for the current configuration."""
    if record is None:
        text = (
            "⚙️ **Server Settings**\n\n"
            "No server configured.\n\n"
            "To add one, send:\n"
            f"{SET_CONFIG_USAGE}"
        )
        return text, SETTINGS_KEYBOARD

    name = escape_markdown(record.name) if record.name else "Not set"
    text = (
        "⚙️ **Server Settings**\n\n"
        f"Host: {escape_markdown(record.host)}\n"
        f"Port: {record.port}\n"
        f"Name: {name}\n\n"
        "To change it, send:\n"
        "`/mss-set <host>[:<port>] [name]`"
    )
    return text, SETTINGS_KEYBOARD
