"""
Print trainer records from the Pokedex database.

Usage:
    pokedex-dump            # every trainer with a caught count
    pokedex-dump ash        # one trainer's caught Pokemon
    pokedex-dump --db other.db ash
"""

from pathlib import Path
from typing import Optional, Sequence, TextIO
import argparse
import sys

from poketerm.config.settings import get_settings
from poketerm.errors import StorageError
from poketerm.storage.trainers import TrainerStore


def dump_trainer(store: TrainerStore, name: str, out: TextIO) -> bool:
    """Write one trainer's record. Returns False if the trainer is unknown."""
    key = name.lower()
    entries = store.find(key)
    if entries is None:
        print(f"trainer not found: {key}", file=out)
        return False

    print(f"trainer: {key}", file=out)
    print(f"count: {len(entries)}", file=out)
    for entry in entries:
        print(f"- {entry}", file=out)
    return True


def dump_all(store: TrainerStore, out: TextIO) -> int:
    """Write one summary line per trainer. Returns the number of trainers."""
    trainers = store.list_trainers()
    for name, count in trainers:
        print(f"{name}: {count} caught", file=out)
    return len(trainers)


def main(argv: Optional[Sequence[str]] = None, out: TextIO = sys.stdout) -> int:
    parser = argparse.ArgumentParser(
        prog="pokedex-dump",
        description="Show the Pokemon each trainer has caught.",
    )
    parser.add_argument("name", nargs="?", help="trainer to show (all trainers if omitted)")
    parser.add_argument("--db", type=Path, help="database file (defaults to the configured one)")
    args = parser.parse_args(argv)

    database = args.db or get_settings().storage.database_path
    store = TrainerStore(database)

    try:
        if args.name:
            dump_trainer(store, args.name, out)
        else:
            dump_all(store, out)
    except StorageError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
