from typing import Dict, List, Optional, Sequence

FRAMES = 10
PINS = 10
STRIKE = "X"
SPARE = "/"
ALL_ROLL_TOKENS = [str(n) for n in range(PINS + 1)] + [STRIKE]


class ValidationError(Exception):
    """Raised when submitted rolls or game details are invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def _validate_frame_number(frame_number: int) -> int:
    if isinstance(frame_number, bool):
        raise ValidationError("Invalid frame number: must be an integer (not a boolean).")
    try:
        frame = int(frame_number)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid frame number: {frame_number!r}")
    if not 1 <= frame <= FRAMES:
        raise ValidationError(
            f"Invalid frame number: {frame}. Must be between 1 and {FRAMES}."
        )
    return frame


def _clean_tokens(tokens: Sequence[Optional[str]]) -> List[str]:
    if isinstance(tokens, (str, bytes)):
        raise ValidationError("Rolls must be provided as a list of strings.")
    cleaned: List[str] = []
    for raw in tokens:
        if raw is None:
            continue
        if not isinstance(raw, str):
            raise ValidationError(f"Invalid roll value: {raw!r}")
        token = raw.strip()
        if token:
            cleaned.append(token)
    return cleaned


def _resolve_tokens(tokens: Sequence[str]) -> List[int]:
    resolved: List[int] = []
    for token in tokens:
        if token == STRIKE:
            resolved.append(PINS)
        elif token == SPARE:
            if not resolved:
                raise ValidationError("A spare cannot be the first roll of a frame")
            if resolved[-1] == PINS:
                raise ValidationError("Cannot have a spare after a strike")
            resolved.append(PINS - resolved[-1])
        else:
            # ``str.isdigit`` alone would admit non-ASCII digits.
            if not (token.isascii() and token.isdigit()):
                raise ValidationError(f"Invalid roll value: {token}")
            pins = int(token)
            if pins > PINS:
                raise ValidationError(f"Invalid roll value: {token}")
            resolved.append(pins)
    return resolved


def _earns_bonus_roll(first: int, second: int) -> bool:
    return first == PINS or (first + second == PINS and second != 0)


def parse_frame_rolls(tokens: Sequence[Optional[str]], frame_number: int) -> List[int]:
    """Parse the raw roll tokens of one frame into pin counts.

    Accepted tokens are ``"X"`` (strike), ``"/"`` (spare, never first) and the
    integers ``"0"`` to ``"10"``. Blank tokens are dropped before validation.

    Rules for frames 1-9:
    - A single roll must be a strike
    - Two rolls may not start with a strike and may only exceed 10 pins via
      the spare complement

    Rules for frame 10:
    - Two rolls are an open frame (a strike or spare requires a third roll)
    - A third roll is only allowed after a strike or a spare

    Raises ``ValidationError`` on the first rule violated; nothing partial
    is ever returned.
    """

    frame = _validate_frame_number(frame_number)
    cleaned = _clean_tokens(tokens)

    max_rolls = 2 if frame < FRAMES else 3
    if len(cleaned) == 0 or len(cleaned) > max_rolls:
        raise ValidationError(
            f"Invalid number of rolls for frame {frame}: expected up to "
            f"{max_rolls} rolls, got {len(cleaned)}"
        )

    parsed = _resolve_tokens(cleaned)

    if frame < FRAMES:
        if len(parsed) == 1:
            if parsed[0] != PINS:
                raise ValidationError(
                    "A single roll in frames 1-9 must be a strike"
                )
            return parsed
        first, second = parsed
        if first == PINS:
            raise ValidationError("A strike in frames 1-9 should only have one roll")
        if first + second > PINS and second != PINS - first:
            raise ValidationError(
                f"Invalid rolls: {first} + {second} exceeds {PINS} without a spare"
            )
        return parsed

    if len(parsed) == 2:
        first, second = parsed
        if _earns_bonus_roll(first, second):
            raise ValidationError("10th frame with a strike or spare requires 3 rolls")
        if first + second < PINS:
            return parsed
        raise ValidationError(
            f"Invalid rolls in 10th frame: {first} + {second} exceeds {PINS} without a spare"
        )
    if len(parsed) == 3:
        if _earns_bonus_roll(parsed[0], parsed[1]):
            return parsed
        raise ValidationError(
            "Third roll in 10th frame is only allowed after a strike or spare"
        )
    raise ValidationError(
        "Invalid rolls for 10th frame: expected 2 rolls for an open frame "
        "or 3 rolls for a strike/spare"
    )


def is_frame_complete(tokens: Sequence[Optional[str]], frame_number: int) -> bool:
    try:
        parse_frame_rolls(tokens, frame_number)
    except ValidationError:
        return False
    return True


def _after_partial_rack(knocked: int) -> List[str]:
    return [str(n) for n in range(PINS - knocked + 1)] + [SPARE]


def next_roll_options(tokens: Sequence[Optional[str]], frame_number: int) -> List[str]:
    """Return the tokens that may be entered next in a frame.

    An empty list means the frame is complete. Raises ``ValidationError``
    when the tokens entered so far cannot begin a legal frame.
    """

    frame = _validate_frame_number(frame_number)
    cleaned = _clean_tokens(tokens)

    max_rolls = 2 if frame < FRAMES else 3
    if len(cleaned) >= max_rolls:
        # A full-length prefix is either a finished frame or an illegal one.
        parse_frame_rolls(cleaned, frame)
        return []

    pins = _resolve_tokens(cleaned)
    if not pins:
        return list(ALL_ROLL_TOKENS)

    if len(pins) == 1:
        if pins[0] == PINS:
            return list(ALL_ROLL_TOKENS) if frame == FRAMES else []
        return _after_partial_rack(pins[0])

    # Two rolls into the 10th frame.
    if _earns_bonus_roll(pins[0], pins[1]):
        if pins[0] == PINS and pins[1] != PINS:
            return list(ALL_ROLL_TOKENS) + [SPARE]
        return list(ALL_ROLL_TOKENS)
    parse_frame_rolls(cleaned, frame)
    return []


def validate_roster(
    players: Sequence[Dict[str, str]],
    *,
    min_players: int,
    max_players: int,
) -> List[Dict[str, str]]:
    """Validate a game's starting roster and return it normalized.

    Player ids must be unique and non-empty; names are trimmed and must not be
    empty. Names may repeat between players.
    """

    if not isinstance(players, Sequence) or isinstance(players, (str, bytes)):
        raise ValidationError("Players must be provided as a list.")
    if not min_players <= len(players) <= max_players:
        raise ValidationError(
            f"Invalid number of players. Must be between {min_players} and {max_players}."
        )

    normalized: List[Dict[str, str]] = []
    seen: set[str] = set()
    for index, player in enumerate(players, start=1):
        player_id = str(player.get("playerId") or "").strip()
        name = player.get("name")
        if not player_id or not isinstance(name, str) or not name.strip():
            raise ValidationError(
                f"Player #{index} must have a playerId and a non-empty name."
            )
        if player_id in seen:
            raise ValidationError(f"Duplicate playerId: {player_id}")
        seen.add(player_id)
        normalized.append({"playerId": player_id, "name": name.strip()})
    return normalized
