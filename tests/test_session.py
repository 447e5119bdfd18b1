import asyncio
import random
import tempfile
import unittest
from pathlib import Path

from poketerm.assets.registry import SpriteRegistry
from poketerm.config.settings import RenderSettings, Settings
from poketerm.core.events import Event, EventType
from poketerm.core.state import Screen
from poketerm.errors import StorageError
from poketerm.net.server import GameServer
from poketerm.session import Session
from poketerm.storage.trainers import TrainerStore


def make_settings():
    return Settings(_env_file=None, render=RenderSettings(width=80, height=30))


def capture(session, dex_id):
    session.event_bus.emit(Event(EventType.CAPTURED, data={"dex_id": dex_id}, source="test"))


class BrokenStore(TrainerStore):
    def load(self, name):
        raise StorageError("disk on fire")


class SessionStorageTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = TrainerStore(Path(self.tmpdir.name) / "pokedex.db")
        self.server = GameServer(make_settings(), SpriteRegistry(), self.store)

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def test_login_restores_captured_set(self):
        self.store.record_capture("ash", "charmander")
        self.store.record_capture("ash", "mew")

        session = self.server.create_session()
        self.assertTrue(await session.submit("Ash"))

        self.assertIs(session.screen, Screen.GAME)
        self.assertEqual(session.captured, {4, 151})
        self.assertIn("Caught: 2/151", session.render().text())

    async def test_captures_are_saved_by_close(self):
        session = self.server.create_session()
        await session.submit("ash")
        capture(session, 25)
        capture(session, 1)
        await session.close()

        self.assertEqual(self.store.load("ash"), ["pikachu", "bulbasaur"])

    async def test_name_is_unique_while_connected(self):
        first = self.server.create_session()
        second = self.server.create_session()

        self.assertTrue(await first.submit("ash"))
        self.assertFalse(await second.submit("ASH"))
        self.assertIs(second.screen, Screen.NAME_ENTRY)
        self.assertIn("ash", second.screens.name_entry.error)

        await first.close()
        self.assertTrue(await second.submit("ash"))

    async def test_failed_load_releases_the_name(self):
        server = GameServer(make_settings(), SpriteRegistry(), BrokenStore(Path(self.tmpdir.name) / "x.db"))
        session = server.create_session()

        self.assertFalse(await session.submit("ash"))
        self.assertIs(session.screen, Screen.NAME_ENTRY)
        self.assertIsNotNone(session.screens.name_entry.error)
        self.assertTrue(server.claim_name("ash"))

    async def test_quit_on_name_entry_skips_lookup(self):
        session = self.server.create_session()
        self.assertTrue(await session.submit("quit"))
        self.assertTrue(session.closed)

    async def test_close_emits_session_closed(self):
        session = self.server.create_session()
        await session.submit("ash")
        await session.close()
        await session.close()

        closed = session.event_bus.get_history(EventType.SESSION_CLOSED)
        self.assertEqual(len(closed), 1)
        self.assertEqual(closed[0].data["trainer"], "ash")


class OfflineSessionTests(unittest.TestCase):
    def test_captures_without_a_loop_are_saved_on_close(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = TrainerStore(Path(tmpdir) / "pokedex.db")
            session = Session(settings=make_settings(), store=store, rng=random.Random(5))
            session.handle_input("gary")
            capture(session, 133)

            self.assertEqual(store.load("gary"), [])
            asyncio.run(session.close())
            self.assertEqual(store.load("gary"), ["eevee"])

    def test_session_without_store_keeps_captures_in_memory(self):
        session = Session(settings=make_settings(), rng=random.Random(5))
        session.handle_input("gary")
        capture(session, 133)
        self.assertEqual(session.captured, {133})


if __name__ == "__main__":
    unittest.main()
