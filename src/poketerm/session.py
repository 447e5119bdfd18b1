"""
One connected trainer.

A Session owns everything mutable about a connection: its frame buffers,
compositor, event bus, screen state machine (and through the game screen
its capture machine) and the trainer's captured set. Nothing in it is
shared with other sessions; only the sprite registry and the trainer
store are passed in.
"""

from typing import Callable, List, Optional, Set
import asyncio
import logging
import random

from poketerm.assets.pokedex import id_for, name_for
from poketerm.assets.registry import SpriteRegistry
from poketerm.config.settings import Settings, get_settings
from poketerm.core.events import Event, EventBus, EventType
from poketerm.core.state import Screen, StateMachine
from poketerm.errors import StorageError
from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import ColorProfile
from poketerm.graphics.compositor import Compositor, Frame
from poketerm.screens.base import SessionContext, always_available
from poketerm.screens.manager import ScreenManager
from poketerm.storage.trainers import TrainerStore

logger = logging.getLogger(__name__)


class Session:
    """
    Root aggregate of one connection.

    Args:
        settings: Application settings
        sprites: Shared, read-only sprite registry
        profile: Color profile frames are resolved for
        store: Trainer records (None keeps captures in memory only)
        width: Grid width in cells (defaults to settings)
        height: Grid height in cells (defaults to settings)
        claim_name: Reserves a trainer name among connected sessions
        release_name: Frees a name reserved with claim_name
        rng: Random source (seed it for repeatable sessions)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        sprites: Optional[SpriteRegistry] = None,
        profile: ColorProfile = ColorProfile.TRUECOLOR,
        store: Optional[TrainerStore] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        claim_name: Callable[[str], bool] = always_available,
        release_name: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.profile = profile
        self._release_name = release_name
        self._closed = False

        width = width or self.settings.render.width
        height = height or self.settings.render.height

        self.buffers = FrameBuffers(width, height)
        self.compositor = Compositor(profile)
        self.event_bus = EventBus()
        self.state_machine = StateMachine(Screen.NAME_ENTRY)

        self.context = SessionContext(
            state_machine=self.state_machine,
            event_bus=self.event_bus,
            sprites=sprites or SpriteRegistry(),
            settings=self.settings,
            width=width,
            height=height,
            claim_name=claim_name,
        )
        self.screens = ScreenManager(self.context, rng=rng)

        # Saves scheduled on the running loop; flushed on close
        self._pending: List[str] = []
        self._save_tasks: Set[asyncio.Task] = set()

        self.event_bus.subscribe(EventType.CAPTURED, self._on_captured)

    # Queries
    @property
    def trainer(self) -> Optional[str]:
        return self.state_machine.context.trainer

    @property
    def captured(self) -> Set[int]:
        return self.context.captured

    @property
    def screen(self) -> Screen:
        return self.state_machine.state

    @property
    def game(self):
        return self.screens.game

    @property
    def closed(self) -> bool:
        return self._closed or self.screens.terminated

    # Tick interface
    def advance(self, delta_ms: float) -> None:
        """Advance the active screen by one tick."""
        if not self.closed:
            self.screens.update(delta_ms)

    def render(self) -> Frame:
        """Composite the active screen into a finished frame."""
        return self.compositor.compose(self.buffers, [self.screens.render])

    # Input
    def handle_input(self, line: str) -> bool:
        """Handle one line without touching storage."""
        if self.closed:
            return False
        return self.screens.handle_input(line)

    async def submit(self, line: str) -> bool:
        """Handle one line from the transport.

        On the name entry screen a valid name is looked up in the trainer
        store before the game starts; everything else goes through
        handle_input.
        """
        if self.closed:
            return False
        if self.screen is Screen.NAME_ENTRY and line.strip().lower() not in ("quit", "exit"):
            name = self.screens.name_entry.validate(line)
            if name is None:
                return False
            return await self.login(name)
        return self.handle_input(line)

    async def login(self, name: str) -> bool:
        """Load a trainer's record and enter the game."""
        if self.store is not None:
            try:
                records = await self.store.load_async(name)
            except StorageError as e:
                logger.error(f"Failed to load trainer {name}: {e}")
                self.screens.name_entry.error = "Could not load your Pokedex, try again"
                if self._release_name:
                    self._release_name(name)
                self.screens.name_entry.claimed = None
                return False
        else:
            records = []

        self.captured.clear()
        for entry in records:
            dex_id = id_for(entry)
            if dex_id is None:
                logger.warning(f"Unknown Pokemon in record of {name}: {entry}")
                continue
            self.captured.add(dex_id)

        logger.info(f"Trainer {name} logged in with {len(self.captured)} caught")
        return self.screens.name_entry.accept(name)

    # Captures
    def _on_captured(self, event: Event) -> None:
        dex_id = event.data.get("dex_id")
        if dex_id is None:
            return

        self.captured.add(dex_id)
        if self.store is None or self.trainer is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (local use): saved on the next flush
            self._pending.append(name_for(dex_id))
            return

        task = loop.create_task(self._save(name_for(dex_id)))
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def _save(self, pokemon: str) -> None:
        try:
            await self.store.record_capture_async(self.trainer, pokemon)
        except StorageError as e:
            logger.error(f"Failed to save capture of {pokemon} for {self.trainer}: {e}")

    async def flush(self) -> None:
        """Wait for every capture of this session to be saved."""
        pending, self._pending = self._pending, []
        for pokemon in pending:
            await self._save(pokemon)
        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks))

    async def close(self) -> None:
        """End the session: stop the screens, save captures, free the name."""
        if self._closed:
            return

        self.screens.terminate()
        self._closed = True
        await self.flush()

        trainer = self.trainer
        claimed = self.screens.name_entry.claimed
        if claimed and self._release_name:
            self._release_name(claimed)

        self.event_bus.emit(Event(
            EventType.SESSION_CLOSED,
            data={"trainer": trainer},
            source="session",
        ))
        logger.info(f"Session closed: {trainer or 'anonymous'}")
