"""
Telnet-style game server.

Every connection gets its own Session, driven by two tasks: an
AnimationClock that renders and writes a frame per tick, and an input
reader that feeds complete lines to the session. When either finishes
(quit, disconnect, transport error) the other is cancelled and the
session is closed.
"""

from typing import Dict, List, Optional, Set, Tuple
import asyncio
import contextlib
import logging

from poketerm.animation.clock import AnimationClock
from poketerm.assets.registry import SpriteRegistry
from poketerm.config.settings import Settings
from poketerm.graphics.ansi import CLEAR_SCREEN, HIDE_CURSOR, RESET, SHOW_CURSOR, encode_frame_bytes
from poketerm.graphics.colors import ColorProfile
from poketerm.graphics.compositor import Frame
from poketerm.session import Session
from poketerm.storage.trainers import TrainerStore

logger = logging.getLogger(__name__)

# Telnet protocol bytes
IAC = 255
SB = 250
SE = 240
NEGOTIATION = (251, 252, 253, 254)  # WILL, WONT, DO, DONT


def strip_telnet(data: bytes) -> bytes:
    """Remove telnet IAC commands, options and subnegotiations from a chunk."""
    out = bytearray()
    i = 0
    n = len(data)
    while i < n:
        byte = data[i]
        if byte != IAC:
            out.append(byte)
            i += 1
            continue

        if i + 1 >= n:
            break
        command = data[i + 1]
        if command == IAC:
            # Escaped 0xFF is not text either
            i += 2
        elif command in NEGOTIATION:
            i += 3
        elif command == SB:
            end = data.find(bytes((IAC, SE)), i + 2)
            i = n if end < 0 else end + 2
        else:
            i += 2
    return bytes(out)


def decode_line(data: bytes) -> str:
    """Telnet line -> text, without control bytes or line ending."""
    text = strip_telnet(data).decode("utf-8", errors="ignore")
    return "".join(ch for ch in text if ch.isprintable()).strip()


class GameServer:
    """
    Accepts connections and runs one Session per connection.

    Args:
        settings: Application settings
        sprites: Shared sprite registry (loaded once at startup)
        store: Trainer records shared by all sessions
        profile: Color profile for every session (defaults to settings)
    """

    def __init__(
        self,
        settings: Settings,
        sprites: SpriteRegistry,
        store: TrainerStore,
        profile: Optional[ColorProfile] = None,
    ):
        self.settings = settings
        self.sprites = sprites
        self.store = store
        self.profile = profile or ColorProfile.from_name(settings.color_profile)

        self._server: Optional[asyncio.AbstractServer] = None
        self._sessions: Set[Session] = set()
        self._names: Set[str] = set()
        self._dropped_frames: Dict[int, int] = {}

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def addresses(self) -> List[Tuple]:
        """Bound socket addresses, empty until started."""
        if self._server is None:
            return []
        return [sock.getsockname() for sock in self._server.sockets]

    # Trainer names are unique among connected sessions
    def claim_name(self, name: str) -> bool:
        if name in self._names:
            return False
        self._names.add(name)
        return True

    def release_name(self, name: str) -> None:
        self._names.discard(name)

    def create_session(self) -> Session:
        return Session(
            settings=self.settings,
            sprites=self.sprites,
            profile=self.profile,
            store=self.store,
            claim_name=self.claim_name,
            release_name=self.release_name,
        )

    async def start(self) -> None:
        cfg = self.settings.server
        self._server = await asyncio.start_server(self.handle_client, cfg.host, cfg.port)
        addresses = ", ".join(str(address) for address in self.addresses)
        logger.info(f"Listening on {addresses} ({self.profile.value} color)")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        logger.info("Server stopped")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")

        if len(self._sessions) >= self.settings.server.max_sessions:
            logger.warning(f"Rejecting {peer}: session limit reached")
            writer.write(b"Server is full, try again later.\r\n")
            await self._close_writer(writer)
            return

        session = self.create_session()
        self._sessions.add(session)
        logger.info(f"Client connected: {peer} ({len(self._sessions)} active)")

        writer.write((HIDE_CURSOR + CLEAR_SCREEN).encode())
        clock = AnimationClock(
            session,
            sink=lambda frame: self.send_frame(writer, frame, id(session)),
            tick_rate=self.settings.animation.tick_rate,
        )

        clock_task = asyncio.create_task(clock.run())
        input_task = asyncio.create_task(self.read_input(reader, session))

        try:
            await asyncio.wait({clock_task, input_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (clock_task, input_task):
                task.cancel()
            results = await asyncio.gather(clock_task, input_task, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Session task for {peer} failed: {result}")

            await session.close()
            self._sessions.discard(session)
            dropped = self._dropped_frames.pop(id(session), 0)
            if dropped:
                logger.info(f"Dropped {dropped} frames for slow client {peer}")

            if not writer.is_closing():
                writer.write((RESET + SHOW_CURSOR + "\r\nBye!\r\n").encode())
            await self._close_writer(writer)
            logger.info(
                f"Client disconnected: {peer} after {session.compositor.frame_count} frames "
                f"({len(self._sessions)} active)"
            )

    async def read_input(self, reader: asyncio.StreamReader, session: Session) -> None:
        """Feed complete lines to the session until EOF or quit."""
        while not session.closed:
            try:
                data = await reader.readline()
            except (ConnectionError, asyncio.LimitOverrunError, ValueError) as e:
                logger.debug(f"Input stream ended: {e}")
                return
            if not data:
                return

            line = decode_line(data)
            if line:
                await session.submit(line)

    def send_frame(self, writer: asyncio.StreamWriter, frame: Frame, key: int) -> None:
        """Queue a frame without waiting; drop it if the client is not keeping up."""
        if writer.is_closing():
            return

        transport = writer.transport
        if transport.get_write_buffer_size() > self.settings.server.write_buffer_limit:
            self._dropped_frames[key] = self._dropped_frames.get(key, 0) + 1
            return

        writer.write(encode_frame_bytes(frame))

    @staticmethod
    async def _close_writer(writer: asyncio.StreamWriter) -> None:
        writer.close()
        with contextlib.suppress(ConnectionError):
            await writer.wait_closed()
