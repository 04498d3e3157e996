"""Ten-pin bowling score calculator.

Frames are supplied as already validated pin counts (see
``scoreboard.services.validation.parse_frame_rolls``). Strike and spare
bonuses are resolved by looking ahead into the flattened roll sequence of the
whole game, so a bonus may come from the next frame or the one after it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

FRAMES = 10
PINS = 10
UNPLAYED = "-"


@dataclass(frozen=True)
class CalculatedFrame:
    rolls: Tuple[int, ...]
    display: str
    # ``None`` while the frame's bonus rolls have not been recorded yet.
    cumulative_total: Optional[int]

    @property
    def played(self) -> bool:
        return bool(self.rolls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rolls": list(self.rolls),
            "display": self.display,
            "cumulativeTotal": self.cumulative_total,
        }


@dataclass(frozen=True)
class PlayerScore:
    frames: Tuple[CalculatedFrame, ...]
    total: int

    @property
    def complete(self) -> bool:
        """``True`` once the final frame has been recorded."""

        return self.frames[-1].played

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frames": [f.to_dict() for f in self.frames],
            "total": self.total,
        }


def _normalize(frames: Sequence[Optional[Sequence[int]]]) -> List[List[int]]:
    normalized = [list(f) if f else [] for f in list(frames)[:FRAMES]]
    normalized.extend([] for _ in range(FRAMES - len(normalized)))
    return normalized


def _tenth_frame_display(rolls: Sequence[int]) -> str:
    # "/" only for a roll that clears a part-fallen rack and "X" only on a fresh
    # rack, so every rendering parses back to the same pins.
    marks: List[str] = []
    fresh_rack = True
    standing = PINS
    for pins in rolls:
        if fresh_rack and pins == PINS:
            marks.append("X")
        elif not fresh_rack and pins == standing:
            marks.append("/")
            fresh_rack, standing = True, PINS
        else:
            marks.append(str(pins))
            if fresh_rack:
                fresh_rack, standing = False, PINS - pins
            else:
                fresh_rack, standing = True, PINS
    return " ".join(marks)


def frame_display(rolls: Sequence[int], frame_number: int) -> str:
    """Render a frame the way it is written on a score sheet."""

    if not rolls:
        return UNPLAYED
    if frame_number == FRAMES:
        return _tenth_frame_display(rolls)
    if len(rolls) == 1 and rolls[0] == PINS:
        return "X"
    if len(rolls) == 2 and rolls[0] + rolls[1] == PINS:
        return f"{rolls[0]} /"
    return " ".join(str(r) for r in rolls)


def _frame_score(
    rolls: Sequence[int], frame_index: int, flat: Sequence[int], start: int
) -> Optional[int]:
    if not rolls:
        return None
    if frame_index == FRAMES - 1:
        # The final frame already carries its own bonus rolls.
        return sum(rolls)
    if len(rolls) == 1:
        if rolls[0] != PINS:
            return None
        if start + 2 < len(flat):
            return PINS + flat[start + 1] + flat[start + 2]
        return None
    first, second = rolls[0], rolls[1]
    if first + second == PINS:
        if start + 2 < len(flat):
            return PINS + flat[start + 2]
        return None
    return first + second


def calculate_score(frames: Sequence[Optional[Sequence[int]]]) -> PlayerScore:
    """Compute display strings and running totals for one player's game.

    ``frames`` holds up to ten entries of pin counts; ``None`` or an empty
    list marks a frame that has not been played. Frames whose strike or spare
    bonus is still unknown get a ``None`` cumulative total, and later frames
    keep accumulating regardless.
    """

    normalized = _normalize(frames)
    flat = [pins for rolls in normalized for pins in rolls]

    roll_index: List[int] = []
    offset = 0
    for rolls in normalized:
        roll_index.append(offset)
        offset += len(rolls)

    total = 0
    calculated: List[CalculatedFrame] = []
    for i, rolls in enumerate(normalized):
        score = _frame_score(rolls, i, flat, roll_index[i])
        cumulative: Optional[int] = None
        if score is not None:
            total += score
            cumulative = total
        calculated.append(
            CalculatedFrame(
                rolls=tuple(rolls),
                display=frame_display(rolls, i + 1),
                cumulative_total=cumulative,
            )
        )

    return PlayerScore(frames=tuple(calculated), total=total)
