"""Internal application services (pure helpers, no I/O)."""

from .validation import (
    ValidationError,
    is_frame_complete,
    next_roll_options,
    parse_frame_rolls,
    validate_roster,
)

__all__ = [
    "ValidationError",
    "is_frame_complete",
    "next_roll_options",
    "parse_frame_rolls",
    "validate_roster",
]
