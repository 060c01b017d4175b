# settings.py
# Runtime configuration read from the environment.

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core import DEFAULT_BOARD_SIZE, DEFAULT_WIN_TILE, is_power_of_two

ENV_PREFIX = "SLIDE2048_"

DEFAULT_SAVE_PATH = Path("2048_save.json")
DEFAULT_ANIMATION_STEP = 0.15
DEFAULT_LOG_LEVEL = "INFO"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    board_size: int = DEFAULT_BOARD_SIZE
    win_tile: int = DEFAULT_WIN_TILE
    save_path: Path = DEFAULT_SAVE_PATH
    animation_step: float = DEFAULT_ANIMATION_STEP
    autosave: bool = True
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if self.board_size < 2:
            raise ValueError("Board size must be at least 2.")
        if not is_power_of_two(self.win_tile) or self.win_tile < 4:
            raise ValueError("Win tile must be a power of two of at least 4.")
        if not 0 < self.animation_step <= 1:
            raise ValueError("Animation step must be in (0, 1].")


def _env(name: str) -> Optional[str]:
    return os.environ.get(ENV_PREFIX + name)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def settings_from_env() -> Settings:
    """Build Settings from SLIDE2048_* environment variables, falling back to defaults."""
    board_size = _env("BOARD_SIZE")
    win_tile = _env("WIN_TILE")
    save_path = _env("SAVE_PATH")
    animation_step = _env("ANIMATION_STEP")
    autosave = _env("AUTOSAVE")
    return Settings(
        board_size=int(board_size) if board_size else DEFAULT_BOARD_SIZE,
        win_tile=int(win_tile) if win_tile else DEFAULT_WIN_TILE,
        save_path=Path(save_path) if save_path else DEFAULT_SAVE_PATH,
        animation_step=float(animation_step) if animation_step else DEFAULT_ANIMATION_STEP,
        autosave=_parse_bool("AUTOSAVE", autosave) if autosave else True,
        log_level=(_env("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
