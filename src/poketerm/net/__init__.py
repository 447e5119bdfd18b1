"""Network transport."""

from poketerm.net.server import GameServer, decode_line, strip_telnet

__all__ = ["GameServer", "decode_line", "strip_telnet"]
