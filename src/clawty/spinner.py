"""Spinner animation state."""

from __future__ import annotations

from dataclasses import dataclass

FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
INTERVAL = 0.08  # seconds between frames


@dataclass
class SpinnerAnimator:
    """Cycles through ``FRAMES``; owns no timer and does no I/O."""

    index: int = 0
    frames: tuple[str, ...] = FRAMES
    interval: float = INTERVAL

    @property
    def frame(self) -> str:
        return self.frames[self.index]

    def advance(self) -> str:
        self.index = (self.index + 1) % len(self.frames)
        return self.frame

    def reset(self) -> None:
        self.index = 0
