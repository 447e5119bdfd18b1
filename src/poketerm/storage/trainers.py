"""
Persistent trainer records.

One SQLite table keyed by trainer name; each row holds the trainer's
caught Pokemon as a JSON array of lower-case names, in capture order.
Blocking calls are wrapped for the event loop with asyncio.to_thread and
serialized per trainer.
"""

from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import asyncio
import json
import logging
import sqlite3

from poketerm.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS trainers (
    name TEXT PRIMARY KEY,
    pokedex TEXT NOT NULL
)
"""


class TrainerStore:
    """
    SQLite-backed trainer records.

    Every call opens its own connection, so the store can be used from
    worker threads without sharing a connection between them.

    Args:
        database_path: SQLite file (created on first use)
    """

    def __init__(self, database_path: Path | str = "pokedex.db"):
        self.database_path = Path(database_path)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.database_path)
            if not self._initialized:
                conn.execute(SCHEMA)
                conn.commit()
                self._initialized = True
            return conn
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open trainer database {self.database_path}: {e}") from e

    @staticmethod
    def _decode(name: str, text: str) -> List[str]:
        try:
            entries = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt pokedex for trainer {name}: {e}") from e
        if not isinstance(entries, list):
            raise StorageError(f"Corrupt pokedex for trainer {name}: not a list")
        return [str(entry) for entry in entries]

    def load(self, name: str) -> List[str]:
        """
        Get a trainer's caught Pokemon.

        Args:
            name: Trainer name (case-insensitive)

        Returns:
            Caught Pokemon names; empty for an unknown trainer
        """
        key = name.lower()
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT pokedex FROM trainers WHERE name = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load trainer {key}: {e}") from e
        finally:
            conn.close()

        if row is None:
            return []
        return self._decode(key, row[0])

    def find(self, name: str) -> Optional[List[str]]:
        """Like load, but None for an unknown trainer."""
        key = name.lower()
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT pokedex FROM trainers WHERE name = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load trainer {key}: {e}") from e
        finally:
            conn.close()

        return None if row is None else self._decode(key, row[0])

    def record_capture(self, name: str, pokemon: str) -> bool:
        """
        Add a Pokemon to a trainer's record.

        Args:
            name: Trainer name (case-insensitive)
            pokemon: Pokemon name

        Returns:
            True if the record changed, False if it was already caught
        """
        key = name.lower()
        entry = pokemon.lower()
        conn = self._connect()
        try:
            with conn:
                row = conn.execute(
                    "SELECT pokedex FROM trainers WHERE name = ?", (key,)
                ).fetchone()
                entries = [] if row is None else self._decode(key, row[0])
                if entry in entries:
                    return False

                entries.append(entry)
                conn.execute(
                    "INSERT INTO trainers (name, pokedex) VALUES (?, ?) "
                    "ON CONFLICT(name) DO UPDATE SET pokedex = excluded.pokedex",
                    (key, json.dumps(entries)),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save trainer {key}: {e}") from e
        finally:
            conn.close()

        logger.info(f"Trainer {key} caught {entry} ({len(entries)} total)")
        return True

    def list_trainers(self) -> List[Tuple[str, int]]:
        """All trainers with their caught count, ordered by name."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT name, pokedex FROM trainers ORDER BY name"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list trainers: {e}") from e
        finally:
            conn.close()

        return [(name, len(self._decode(name, text))) for name, text in rows]

    async def load_async(self, name: str) -> List[str]:
        async with self._locks[name.lower()]:
            return await asyncio.to_thread(self.load, name)

    async def record_capture_async(self, name: str, pokemon: str) -> bool:
        """Record a capture off the event loop; writes per trainer run in order."""
        async with self._locks[name.lower()]:
            return await asyncio.to_thread(self.record_capture, name, pokemon)
