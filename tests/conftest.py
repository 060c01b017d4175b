from __future__ import annotations

import random
from pathlib import Path

import pytest

from session import GameSession
from snapshot import Snapshot, SnapshotStore


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(2048)


@pytest.fixture()
def save_path(tmp_path: Path) -> Path:
    return tmp_path / "2048_save.json"


@pytest.fixture()
def store(save_path: Path) -> SnapshotStore:
    return SnapshotStore(save_path)


@pytest.fixture()
def session(store: SnapshotStore, rng: random.Random) -> GameSession:
    """A session with a file store but no autosave, so tests decide when files appear."""
    return GameSession(store=store, rng=rng, autosave=False)


@pytest.fixture()
def place(session: GameSession):
    """Put a specific board into the session, as if it had been loaded."""

    def _place(board: list[list[int]], **flags) -> GameSession:
        session.restore(Snapshot(board=board, **flags))
        return session

    return _place
