# snapshot.py
# Persisted game snapshots and the file store that reads and writes them.

import contextlib
import logging
import os
from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

import core

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """Raised when a snapshot cannot be read, decoded or written."""

class SnapshotNotFoundError(SnapshotError):
    """Raised when there is no saved snapshot to load."""


class Snapshot(BaseModel):
    """Serializable projection of a game session."""
    board: List[List[int]] = Field(..., description="The N x N game board, represented as a list of lists.")
    score: int = Field(default=0, ge=0, description="Score of the saved game.")
    best_score: int = Field(default=0, ge=0, description="Best score reached so far.")
    game_over: bool = Field(default=False, description="True if no move was possible when saved.")
    win: bool = Field(default=False, description="True once the win tile has been reached.")
    show_win: bool = Field(default=True, description="False once the player chose to keep going after winning.")

    @field_validator("board")
    @classmethod
    def _check_board(cls, board: List[List[int]]) -> List[List[int]]:
        core.validate_board(board)
        core.get_board_size(board)
        return board


class SnapshotStore:
    """Reads and writes a single JSON snapshot file.

    Writes go to a sibling temporary file that then replaces the target, so a
    failed save never leaves a truncated snapshot behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, snapshot: Snapshot) -> None:
        payload = snapshot.model_dump_json(indent=2)
        temporary = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temporary.write_text(payload, encoding="utf-8")
            os.replace(temporary, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                temporary.unlink()
            raise SnapshotError(f"Could not write snapshot to {self.path}: {exc}") from exc
        logger.debug("Saved snapshot to %s", self.path)

    def load(self) -> Snapshot:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SnapshotNotFoundError(f"No snapshot at {self.path}") from exc
        except OSError as exc:
            raise SnapshotError(f"Could not read snapshot from {self.path}: {exc}") from exc

        try:
            snapshot = Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            raise SnapshotError(f"Malformed snapshot in {self.path}: {exc}") from exc
        logger.debug("Loaded snapshot from %s", self.path)
        return snapshot

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise SnapshotError(f"Could not delete snapshot {self.path}: {exc}") from exc
