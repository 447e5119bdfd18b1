"""
Main entry point for POKETERM.

Runs the multi-player telnet server, or with --demo a single local
session that plays itself in the current terminal.
"""

from typing import Optional, Sequence
import argparse
import asyncio
import logging
import sys

from poketerm import __version__
from poketerm.animation.capture import CATCH_COMMAND, CapturePhase
from poketerm.animation.clock import AnimationClock
from poketerm.assets.registry import SpriteRegistry
from poketerm.config.settings import Settings, get_settings
from poketerm.core.events import Event, EventType
from poketerm.graphics.ansi import CLEAR_SCREEN, HIDE_CURSOR, RESET, SHOW_CURSOR, encode_frame
from poketerm.graphics.colors import ColorProfile
from poketerm.graphics.compositor import Frame
from poketerm.net.server import GameServer
from poketerm.session import Session
from poketerm.storage.trainers import TrainerStore

DEMO_TRAINER = "demo"

# Idle time before the demo throws again
DEMO_THROW_DELAY_MS = 2000.0


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="poketerm",
        description="Catch Pokemon in your terminal over telnet.",
    )
    parser.add_argument("--demo", action="store_true",
                        help="play a local session in this terminal instead of serving")
    parser.add_argument("--host", help="address to listen on")
    parser.add_argument("--port", type=int, help="port to listen on")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


async def run_server(settings: Settings, sprites: SpriteRegistry) -> None:
    """Serve sessions until cancelled."""
    store = TrainerStore(settings.storage.database_path)
    server = GameServer(settings, sprites, store)
    try:
        await server.serve_forever()
    finally:
        await server.stop()


async def run_demo(settings: Settings, sprites: SpriteRegistry, ticks: Optional[int] = None) -> None:
    """Play one session locally: log in, then throw whenever the ball is idle.

    Args:
        settings: Application settings
        sprites: Sprite registry
        ticks: Stop after this many ticks (None runs until interrupted)
    """
    session = Session(
        settings=settings,
        sprites=sprites,
        profile=ColorProfile.from_name(settings.color_profile),
    )
    session.handle_input(DEMO_TRAINER)

    idle_ms = 0.0

    def on_phase(event: Event) -> None:
        nonlocal idle_ms
        if event.data.get("to") is CapturePhase.IDLE:
            idle_ms = 0.0

    session.event_bus.subscribe(EventType.PHASE_CHANGED, on_phase)

    def write_frame(frame: Frame) -> None:
        nonlocal idle_ms
        sys.stdout.write(encode_frame(frame))
        sys.stdout.flush()

        if session.game.phase is CapturePhase.IDLE:
            idle_ms += clock.delta_ms
            if idle_ms >= DEMO_THROW_DELAY_MS:
                session.handle_input(CATCH_COMMAND)
        if ticks is not None and clock.tick_count + 1 >= ticks:
            clock.stop()

    clock = AnimationClock(session, write_frame, tick_rate=settings.animation.tick_rate)

    sys.stdout.write(HIDE_CURSOR + CLEAR_SCREEN)
    try:
        await clock.run()
    finally:
        sys.stdout.write(RESET + SHOW_CURSOR + "\n")
        sys.stdout.flush()
        await session.close()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    args = parse_args(argv)
    settings = get_settings()

    # Command line overrides the environment
    if args.host is not None:
        settings.server.host = args.host
    if args.port is not None:
        settings.server.port = args.port

    # Setup logging
    setup_logging(args.debug or settings.debug)

    logger = logging.getLogger(__name__)
    logger.info(f"POKETERM {__version__} starting...")

    try:
        sprites = SpriteRegistry.from_settings(settings)
        if args.demo:
            logger.info("Running in demo mode")
            asyncio.run(run_demo(settings, sprites))
        else:
            asyncio.run(run_server(settings, sprites))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("POKETERM stopped")


if __name__ == "__main__":
    main()
