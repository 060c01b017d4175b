# cli_driver.py
# This file is intended to be run to play the 2048 game on the CLI

import logging
from typing import Optional

from session import COMMAND_DIRECTIONS, Command, GameSession, RenderView
from settings import configure_logging, settings_from_env

logger = logging.getLogger(__name__)

KEY_COMMANDS = {
    'W': Command.MOVE_UP,
    'A': Command.MOVE_LEFT,
    'S': Command.MOVE_DOWN,
    'D': Command.MOVE_RIGHT,
    'R': Command.RESET,
    'C': Command.ACKNOWLEDGE_WIN,
    'P': Command.SAVE,
    'L': Command.LOAD,
}

PROMPT = "Enter move (W/A/S/D), C to keep going after a win, R reset, P save, L load, Q quit: "


def parse_command(text: str) -> Optional[Command]:
    """Maps a typed key to a command; None if the key is not bound."""
    return KEY_COMMANDS.get(text.strip().upper())


def main():
    settings = settings_from_env()
    configure_logging(settings.log_level)

    # 1. Resume the saved game, or start a new one
    session = GameSession.open(settings)
    display_board_state(session.render_view())
    session.clear_message()

    # 2. Game Loop
    while True:
        try:
            move_input = input(PROMPT).strip().upper()
        except EOFError:
            move_input = 'Q'

        if move_input == 'Q':
            print("Quitting game.")
            break

        command = parse_command(move_input)
        if command is None:
            print("Invalid input. Use W, A, S, D, C, R, P, L or Q.")
            continue

        # 3. Apply the command; a terminal has no frames, so animations finish at once
        took_effect = session.handle(command)
        logger.debug("%s took effect: %s", command.name, took_effect)
        view = session.render_view()
        if took_effect and view.transitions:
            display_transitions(view)
        session.finish_animation()

        if not took_effect and command in COMMAND_DIRECTIONS:
            print("Move did not change the board. Try a different direction.")

        display_board_state(session.render_view())
        session.clear_message()

    # 4. Game Ended
    print("\n--- Final Board State ---")
    display_board_state(session.render_view())


# --- Display Functions (Example of external usage) ---
def display_transitions(view: RenderView):
    """Prints where each tile travelled in the last move."""
    for t in view.transitions:
        print(f"  {t.value} ({t.from_row},{t.from_col}) -> ({t.to_row},{t.to_col}) {t.kind.name.lower()}")


def display_board_state(view: RenderView):
    """Prints the board, score, and game status to the console."""
    print(f"\nScore: {view.score}  Best: {view.best_score}")
    if view.game_over:
        print("GAME OVER! Press R to play again.")
    elif view.show_win_banner:
        print("YOU WON! Press C to keep going.")
    else:
        print(f"Status: {view.phase.upper()}")
    if view.message:
        print(view.message)

    for row in view.board:
        print("\t".join(map(str, row)))
    print("-" * (len(view.board) * 6)) # Adjust width based on board size

# --- Example Game Loop (how to use the session controller) ---
if __name__ == "__main__":
    main()
