# session.py
# The session controller: owns the board, score and animation state for one
# player and runs each move cycle (move, reconcile, spawn, evaluate).

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from statemachine import State, StateMachine

from animation import TileTransition, merged_cells, reconcile_transitions
from core import (
    DEFAULT_BOARD_SIZE,
    DEFAULT_WIN_TILE,
    DIRECTION,
    Board,
    Cell,
    add_random_tile,
    can_move,
    check_for_win,
    copy_board,
    get_board_size,
    initialize_board,
    process_move,
)
from settings import DEFAULT_ANIMATION_STEP, Settings
from snapshot import Snapshot, SnapshotError, SnapshotNotFoundError, SnapshotStore

logger = logging.getLogger(__name__)

MESSAGE_TICKS = 60

PHASE_READY = "ready"
PHASE_ANIMATING = "animating"
PHASE_WON_PENDING_ACK = "won_pending_ack"
PHASE_GAME_OVER = "game_over"


class Command(Enum):
    """Discrete commands delivered by the host event source."""
    MOVE_UP = "move_up"
    MOVE_RIGHT = "move_right"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    RESET = "reset"
    ACKNOWLEDGE_WIN = "acknowledge_win"
    SAVE = "save"
    LOAD = "load"

COMMAND_DIRECTIONS = {
    Command.MOVE_UP: DIRECTION.UP,
    Command.MOVE_RIGHT: DIRECTION.RIGHT,
    Command.MOVE_DOWN: DIRECTION.DOWN,
    Command.MOVE_LEFT: DIRECTION.LEFT,
}


@dataclass
class SessionState:
    board: Board
    score: int = 0
    best_score: int = 0
    game_over: bool = False
    won: bool = False
    win_acknowledged: bool = False


@dataclass(frozen=True)
class RenderView:
    """Read-only picture of the session handed to a renderer once per tick."""
    board: Board
    score: int
    best_score: int
    game_over: bool
    won: bool
    win_acknowledged: bool
    phase: str
    animation_progress: float
    transitions: Tuple[TileTransition, ...] = ()
    merged_cells: Tuple[Cell, ...] = ()
    spawned_cell: Optional[Cell] = None
    message: str = ""
    previous_board: Optional[Board] = field(default=None, repr=False)

    @property
    def show_win_banner(self) -> bool:
        return self.won and not self.win_acknowledged


class SessionMachine(StateMachine):
    """Phases of a session.

    Moves are only accepted in `ready`; the session checks the phase before
    firing `begin_move`.
    """

    ready = State("Ready", value=PHASE_READY, initial=True)
    animating = State("Animating", value=PHASE_ANIMATING)
    won_pending_ack = State("Won-Pending-Ack", value=PHASE_WON_PENDING_ACK)
    game_over = State("GameOver", value=PHASE_GAME_OVER)

    begin_move = ready.to(animating)
    finish_animation = (
        animating.to(game_over, cond="is_game_over")
        | animating.to(won_pending_ack, cond="is_win_pending")
        | animating.to(ready)
    )
    acknowledge = won_pending_ack.to(ready)
    restart = (
        ready.to.itself()
        | animating.to(ready)
        | won_pending_ack.to(ready)
        | game_over.to(ready)
    )

    def __init__(self, session: "GameSession", start_value: Optional[str] = None):
        self.session = session
        super().__init__(start_value=start_value)

    def is_game_over(self) -> bool:
        return self.session.state.game_over

    def is_win_pending(self) -> bool:
        state = self.session.state
        return state.won and not state.win_acknowledged


def _phase_for(state: SessionState) -> str:
    if state.game_over:
        return PHASE_GAME_OVER
    if state.won and not state.win_acknowledged:
        return PHASE_WON_PENDING_ACK
    return PHASE_READY


class GameSession:
    """One player's game: board, scores, phase, animation and persistence."""

    def __init__(self,
                 size: int = DEFAULT_BOARD_SIZE,
                 win_tile: int = DEFAULT_WIN_TILE,
                 store: Optional[SnapshotStore] = None,
                 rng: Optional[random.Random] = None,
                 animation_step: float = DEFAULT_ANIMATION_STEP,
                 autosave: bool = True):
        self.size = size
        self.win_tile = win_tile
        self.store = store
        self.animation_step = animation_step
        self.autosave = autosave
        self._rng = rng or random.Random()

        board, _, _ = initialize_board(size, self._rng)
        self.state = SessionState(board=board)
        self.previous_board: Optional[Board] = None
        self.transitions: List[TileTransition] = []
        self.spawned_cell: Optional[Cell] = None
        self.animation_progress = 0.0
        self.message = ""
        self._message_ticks = 0
        self._machine = SessionMachine(self)

    @classmethod
    def open(cls, settings: Settings, rng: Optional[random.Random] = None) -> "GameSession":
        """Creates a session for `settings`, resuming the saved game when there is one."""
        session = cls(
            size=settings.board_size,
            win_tile=settings.win_tile,
            store=SnapshotStore(settings.save_path),
            rng=rng,
            animation_step=settings.animation_step,
            autosave=settings.autosave,
        )
        if not session.load():
            logger.info("Starting a new %dx%d game", session.size, session.size)
        return session

    # --- Queries ---

    @property
    def phase(self) -> str:
        return self._machine.current_state.value

    @property
    def is_animating(self) -> bool:
        return self.phase == PHASE_ANIMATING

    def render_view(self) -> RenderView:
        state = self.state
        return RenderView(
            board=copy_board(state.board),
            score=state.score,
            best_score=state.best_score,
            game_over=state.game_over,
            won=state.won,
            win_acknowledged=state.win_acknowledged,
            phase=self.phase,
            animation_progress=self.animation_progress,
            transitions=tuple(self.transitions),
            merged_cells=tuple(merged_cells(self.transitions)),
            spawned_cell=self.spawned_cell,
            message=self.message,
            previous_board=copy_board(self.previous_board) if self.previous_board else None,
        )

    # --- Commands ---

    def handle(self, command: Command) -> bool:
        """Applies one external command. Returns True if it took effect."""
        if command in COMMAND_DIRECTIONS:
            return self.move(COMMAND_DIRECTIONS[command])
        if command is Command.RESET:
            self.reset()
            return True
        if command is Command.ACKNOWLEDGE_WIN:
            return self.acknowledge_win()
        if command is Command.SAVE:
            return self.save()
        if command is Command.LOAD:
            return self.load()
        raise ValueError(f"Unknown command: {command!r}")

    def move(self, direction: DIRECTION) -> bool:
        if self.phase != PHASE_READY:
            logger.debug("Ignoring %s while %s", direction.name, self.phase)
            return False

        previous = copy_board(self.state.board)
        result = process_move(previous, direction)
        if not result.moved:
            return False

        self._add_score(result.score_delta)
        self.previous_board = previous
        self.transitions = reconcile_transitions(previous, result.board, direction)
        self.state.board, self.spawned_cell = add_random_tile(result.board, self._rng)

        if check_for_win(self.state.board, self.win_tile):
            self.state.won = True
        self.state.game_over = not can_move(self.state.board)

        self.animation_progress = 0.0
        self._machine.begin_move()

        if self.autosave:
            self.save(announce=False)
        return True

    def tick(self) -> None:
        """Advances one frame: status message countdown and animation progress."""
        if self._message_ticks > 0:
            self._message_ticks -= 1
            if self._message_ticks == 0:
                self.message = ""

        if self.is_animating:
            self.animation_progress = min(1.0, self.animation_progress + self.animation_step)
            if self.animation_progress >= 1.0:
                self._complete_animation()

    def finish_animation(self) -> None:
        """Completes any in-flight animation immediately."""
        if self.is_animating:
            self._complete_animation()

    def reset(self) -> None:
        self.state.board, _, _ = initialize_board(self.size, self._rng)
        self.state.score = 0
        self.state.game_over = False
        self.state.won = False
        self.state.win_acknowledged = False
        self._clear_animation()
        self._machine.restart()

        if self.store is not None:
            try:
                self.store.delete()
            except SnapshotError as exc:
                logger.warning("Could not remove saved game: %s", exc)
        logger.info("Game reset (best score %d)", self.state.best_score)
        self._show_message("Game reset")

    def acknowledge_win(self) -> bool:
        if self.phase != PHASE_WON_PENDING_ACK:
            return False
        self.state.win_acknowledged = True
        self._machine.acknowledge()
        self._show_message("Keep going")
        if self.autosave:
            self.save(announce=False)
        return True

    def snapshot(self) -> Snapshot:
        state = self.state
        return Snapshot(
            board=copy_board(state.board),
            score=state.score,
            best_score=state.best_score,
            game_over=state.game_over,
            win=state.won,
            show_win=not state.win_acknowledged,
        )

    def restore(self, snapshot: Snapshot) -> None:
        """Replaces the session state with `snapshot` and re-derives the phase."""
        self.size = get_board_size(snapshot.board)
        self.state = SessionState(
            board=copy_board(snapshot.board),
            score=snapshot.score,
            best_score=max(snapshot.best_score, snapshot.score),
            game_over=snapshot.game_over,
            won=snapshot.win,
            win_acknowledged=not snapshot.show_win,
        )
        self._clear_animation()
        self._machine = SessionMachine(self, start_value=_phase_for(self.state))

    def save(self, announce: bool = True) -> bool:
        if self.store is None:
            logger.warning("Save requested but no snapshot store is configured")
            if announce:
                self._show_message("Save failed")
            return False
        try:
            self.store.save(self.snapshot())
        except SnapshotError as exc:
            logger.warning("Saving game failed: %s", exc)
            if announce:
                self._show_message("Save failed")
            return False
        if announce:
            self._show_message("Game saved")
        return True

    def load(self) -> bool:
        if self.store is None:
            logger.warning("Load requested but no snapshot store is configured")
            self._show_message("Load failed")
            return False
        try:
            snapshot = self.store.load()
        except SnapshotNotFoundError:
            logger.info("No saved game at %s", self.store.path)
            self._show_message("No saved game found")
            return False
        except SnapshotError as exc:
            logger.warning("Loading game failed: %s", exc)
            self._show_message("Load failed")
            return False

        best_score = self.state.best_score
        self.restore(snapshot)
        # Best score never goes down, even when loading an older save.
        self.state.best_score = max(self.state.best_score, best_score)
        logger.info("Loaded game from %s (score %d)", self.store.path, self.state.score)
        self._show_message("Game loaded")
        return True

    def clear_message(self) -> None:
        self.message = ""
        self._message_ticks = 0

    # --- Internals ---

    def _add_score(self, delta: int) -> None:
        if delta <= 0:
            return
        self.state.score += delta
        self.state.best_score = max(self.state.best_score, self.state.score)

    def _complete_animation(self) -> None:
        self._clear_animation()
        self._machine.finish_animation()
        if self.phase == PHASE_GAME_OVER:
            logger.info("Game over with score %d", self.state.score)
        elif self.phase == PHASE_WON_PENDING_ACK:
            logger.info("Reached %d with score %d", self.win_tile, self.state.score)

    def _clear_animation(self) -> None:
        self.animation_progress = 0.0
        self.transitions = []
        self.spawned_cell = None
        self.previous_board = None

    def _show_message(self, message: str, ticks: int = MESSAGE_TICKS) -> None:
        self.message = message
        self._message_ticks = ticks
