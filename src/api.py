import logging

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core
from animation import TileTransition, TransitionKind, reconcile_transitions
from settings import configure_logging, settings_from_env

app_settings = settings_from_env()
configure_logging(app_settings.log_level)
logger = logging.getLogger(__name__)

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Game API",
    description="A stateless API for playing the 2048 game. "\
                "Manage your game state (board, score, best_score, win_tile) on the client side.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: Optional[int] = Field(
        default=app_settings.board_size,
        gt=1, # Board size must be at least 2x2
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    win_tile: Optional[int] = Field(
        default=app_settings.win_tile,
        gt=0,
        description="The tile value to achieve for winning the game (e.g., 2048)."
    )

class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    board: List[List[int]] = Field(..., description="The N x N game board, represented as a list of lists.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    best_score: int = Field(..., ge=0, description="Best score reached so far.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    win_tile: int = Field(..., gt=0, description="The tile value required to win this game instance.")
    board_size: int = Field(..., gt=0, description="The dimension N of the N x N board.")
    won: bool = Field(default=False, description="True if any tile has reached win_tile.")
    game_over: bool = Field(default=False, description="True if no move can change the board. Independent of won.")
    available_directions: List[core.DIRECTION] = Field(
        default_factory=list,
        description="Directions in which a move would change the board."
    )

class TileTransitionData(BaseModel):
    """A tile travelling between two cells, for client-side animation."""
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    value: int = Field(..., description="Value of the tile before the move.")
    kind: TransitionKind = Field(..., description="MOVE (1) for a slide, MERGE (2) when it combined with another tile.")

    @classmethod
    def from_transition(cls, transition: TileTransition) -> "TileTransitionData":
        return cls(
            from_row=transition.from_row,
            from_col=transition.from_col,
            to_row=transition.to_row,
            to_col=transition.to_col,
            value=transition.value,
            kind=transition.kind,
        )

class MoveRequestData(BaseModel):
    """Data required to make a move."""
    board: List[List[int]] = Field(..., description="Current N x N game board state before the move.")
    score: int = Field(..., ge=0, description="Current score before the move.")
    best_score: int = Field(default=0, ge=0, description="Best score before the move.")
    direction: core.DIRECTION = Field(
        ...,
        description="Direction of the move (UP, DOWN, LEFT, RIGHT)."
    )
    win_tile: int = Field(..., gt=0, description="The win condition tile for this game instance.")
    # board_size is implicitly derived from the board structure.

class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    score_delta: int = Field(default=0, ge=0, description="Points gained by merges in this move.")
    transitions: List[TileTransitionData] = Field(
        default_factory=list,
        description="How each tile got from its old cell to its new one."
    )
    spawned_cell: Optional[Tuple[int, int]] = Field(
        default=None,
        description="The (row, col) of the tile added after the move, if any."
    )
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was invalid, game ended, or other info."
    )

class ReconcileRequestData(BaseModel):
    """A before/after board pair to explain as tile transitions."""
    previous_board: List[List[int]] = Field(..., description="The board before the move.")
    current_board: List[List[int]] = Field(..., description="The board after the move, before a tile was spawned.")
    direction: core.DIRECTION = Field(..., description="Direction of the move.")

class ReconcileResponseData(BaseModel):
    transitions: List[TileTransitionData]

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit("100/minute")
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Initializes a new 2048 game based on the provided settings (size and win_tile).

    - **size**: Dimension of the N x N board (e.g., 4 for 4x4). Default is 4.
    - **win_tile**: Tile value to reach to win (e.g., 2048). Default is 2048.

    Returns the initial game state, including the board with two random tiles,
    score (0), progress status (IN_PROGRESS), and the specified win_tile.
    """
    size = settings.size if settings.size is not None else core.DEFAULT_BOARD_SIZE
    win_tile = settings.win_tile if settings.win_tile is not None else core.DEFAULT_WIN_TILE
    try:
        # Initialize the board using the game logic function
        initial_board, initial_score, _ = core.initialize_board(size)

        # Determine the initial game progress state using the specified win_tile.
        # For a standard new game, this should always be IN_PROGRESS.
        current_progress = core.determine_game_status(initial_board, win_tile)

        logger.info("Started a new %dx%d game", size, size)
        return GameStateData(
            board=initial_board,
            score=initial_score,
            best_score=initial_score,
            progress=current_progress,
            win_tile=win_tile,
            board_size=core.get_board_size(initial_board),
            won=core.check_for_win(initial_board, win_tile),
            game_over=not core.can_move(initial_board),
            available_directions=core.available_directions(initial_board),
        )
    except ValueError as e:
        # Handle errors from game_logic.initialize_board (e.g., invalid size)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Unexpected error in /game/new: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit("100/minute")
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move in the game.

    Requires the current `board` state, `score`, `best_score`, the `direction`
    of the move, and the `win_tile` for this game instance.

    The API will:
    1. Attempt to process the move (slide tiles, merge).
    2. Work out which tiles moved or merged, for animation.
    3. If the move changed the board, add a new random tile (2 or 4).
    4. Determine the new game status (IN_PROGRESS, GAME_WON, GAME_OVER).

    Returns the updated game state, whether the move was effective, and an optional message.
    """
    current_board = request_data.board
    current_score = request_data.score
    direction = request_data.direction
    win_tile = request_data.win_tile

    try:
        board_size_from_request = core.get_board_size(current_board)
        core.validate_board(current_board)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid board structure in request: {str(e)}")

    # Initialize variables for the response
    final_board = core.copy_board(current_board) # Work on a copy
    final_score = current_score
    best_score = max(request_data.best_score, current_score)
    transitions: List[TileTransition] = []
    spawned_cell = None
    message_for_client: Optional[str] = None

    try:
        # Step 1: Process the slide and merge logic for the chosen direction
        board_after_slide, move_was_effective, score_increase = core.process_move(current_board, direction)

        if move_was_effective:
            final_score += score_increase
            best_score = max(best_score, final_score)

            # Step 2: Reconstruct tile provenance before the new tile lands
            transitions = reconcile_transitions(current_board, board_after_slide, direction)

            # Step 3: If the slide was effective, add a new random tile
            final_board, spawned_cell = core.add_random_tile(board_after_slide)
        else:
            # The attempted move did not change the board state
            message_for_client = "Move was not effective; board state unchanged by slide."

        # Step 4: Determine the new game status based on the (potentially) updated final_board
        current_progress = core.determine_game_status(final_board, win_tile)
        won = core.check_for_win(final_board, win_tile)
        game_over = not core.can_move(final_board)

        # Enhance client message based on game status
        if won and game_over:
            message_for_client = "Congratulations! You won! No more valid moves."
        elif current_progress == core.GameProgressState.GAME_WON:
            message_for_client = "Congratulations! You won!"
        elif current_progress == core.GameProgressState.GAME_OVER:
            message_for_client = "Game Over. No more valid moves."

        return MoveResponseData(
            board=final_board,
            score=final_score,
            best_score=best_score,
            progress=current_progress,
            win_tile=win_tile,
            board_size=board_size_from_request, # Size of the board
            won=won,
            game_over=game_over,
            available_directions=core.available_directions(final_board),
            move_was_effective=move_was_effective,
            score_delta=score_increase,
            transitions=[TileTransitionData.from_transition(t) for t in transitions],
            spawned_cell=spawned_cell,
            message=message_for_client
        )
    except ValueError as e:
        # Handles errors from game logic functions if invalid parameters are somehow passed
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.error("Unexpected error in /game/move: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")


@app.post("/game/reconcile", response_model=ReconcileResponseData, summary="Explain a Move as Tile Transitions")
@limiter.limit("100/minute")
async def reconcile_move(request: Request, request_data: ReconcileRequestData):
    """
    Works out which tiles moved or merged between `previous_board` and
    `current_board` for a move in `direction`. Pass the board as it was
    before the new random tile was added.
    """
    try:
        core.validate_board(request_data.previous_board)
        core.validate_board(request_data.current_board)
        transitions = reconcile_transitions(
            request_data.previous_board, request_data.current_board, request_data.direction
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid boards in request: {str(e)}")

    return ReconcileResponseData(
        transitions=[TileTransitionData.from_transition(t) for t in transitions]
    )
