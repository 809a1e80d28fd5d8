"""Parsing and formatting of Minecraft server addresses."""

from dataclasses import dataclass

DEFAULT_PORT = 25565
MAX_PORT = 65535


class AddressError(ValueError):
    """Base class for user-supplied address errors."""

    pass


class InvalidAddressError(AddressError):
    """Raised when the address has no usable host."""

    pass


class InvalidPortError(AddressError):
    """Raised when the port suffix is not a valid port number."""

    def __init__(self, port: str):
        super().__init__(f"invalid port: {port}")
        self.port = port


@dataclass(frozen=True)
class ServerAddress:
    """A server address as entered by the user."""

    host: str
    port: int = DEFAULT_PORT
    display_name: str = ""

    @property
    def label(self) -> str:
        """Name to show for this server, falling back to its address."""
        return self.display_name or format_address(self.host, self.port)


def format_address(host: str, port: int) -> str:
    """Format host and port, omitting the port when it is the default."""
    if port == DEFAULT_PORT:
        return host
    return f"{host}:{port}"


def parse_address(raw: str, display_name: str = "") -> ServerAddress:
    """
    Parse a "host[:port]" string.

    The string is split on its last colon. Without a colon the default port
    is used. IPv6 literals are not supported.

    Raises:
        InvalidAddressError: If the host part is empty
        InvalidPortError: If the port is not a decimal integer in [1, 65535]
    """
    raw = raw.strip()
    host, sep, port_str = raw.rpartition(":")
    if not sep:
        host, port = raw, DEFAULT_PORT
    else:
        # isdigit() alone accepts non-ASCII digits like "²"
        if not (port_str.isascii() and port_str.isdigit()):
            raise InvalidPortError(port_str)
        port = int(port_str)
        if not 1 <= port <= MAX_PORT:
            raise InvalidPortError(port_str)

    if not host:
        raise InvalidAddressError(f"invalid address: {raw!r}")

    return ServerAddress(host=host, port=port, display_name=display_name.strip())


def split_config_argument(argument: str) -> tuple[str, str]:
    """Split "<host[:port]> [display name]" into its two parts."""
    parts = argument.strip().split(maxsplit=1)
    if not parts:
        raise InvalidAddressError("address is required")
    address = parts[0]
    name = parts[1].strip() if len(parts) > 1 else ""
    return address, name
