# backend/scoreboard/routers/games.py
import logging
import uuid
from collections import Counter
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import scoreboard_cache
from ..config import MAX_PLAYERS, MIN_PLAYERS, submit_rate_limit
from ..db import get_session
from ..exceptions import (
    GameNotFound,
    InvalidRolls,
    PlayerNotFound,
    ProblemDetail,
    http_problem,
)
from ..models import Game, GameFrame, GamePlayer
from ..schemas import (
    CalculatedFrameOut,
    FrameRollsIn,
    FrameScoresIn,
    GameCreate,
    GameCreatedOut,
    GameOut,
    PlayerFramesOut,
    PlayerOut,
    PlayerScoreOut,
    RollOptionsOut,
    ScoreboardOut,
    SubmitOut,
)
from ..scoring import bowling
from ..services.validation import (
    FRAMES,
    ValidationError,
    is_frame_complete,
    next_roll_options,
    parse_frame_rolls,
    validate_roster,
)

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
        if parts:
            return parts[-1]
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


limiter = Limiter(key_func=_client_ip)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/games",
    tags=["games"],
    responses={404: {"model": ProblemDetail}},
)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    detail = exc.detail if isinstance(exc.detail, str) else ""
    if detail:
        message = f"rate limit exceeded: {detail}"
    else:
        message = "rate limit exceeded: please wait before submitting another request."
    return JSONResponse(
        status_code=429,
        content={
            "detail": message,
            "code": "rate_limit_exceeded",
        },
    )


def _check_frame_number(frame_number: int) -> int:
    if not 1 <= frame_number <= FRAMES:
        raise http_problem(
            status_code=400,
            detail="Invalid frame number",
            code="invalid_frame_number",
        )
    return frame_number


async def _get_game(session: AsyncSession, game_id: str) -> Game:
    game = await session.get(Game, game_id)
    if not game:
        raise GameNotFound(game_id)
    return game


def _find_player(game: Game, player_id: str) -> GamePlayer:
    for player in game.players:
        if player.player_id == player_id:
            return player
    raise PlayerNotFound(player_id)


def _parse_or_problem(
    game_id: str, player_id: str, tokens: List[str | None], frame_number: int
) -> List[int]:
    try:
        return parse_frame_rolls(tokens, frame_number)
    except ValidationError as exc:
        logger.info(
            "Rejected rolls %r for player %s in game %s frame %d: %s",
            tokens,
            player_id,
            game_id,
            frame_number,
            exc.detail,
        )
        raise InvalidRolls(exc.detail)


def _record_frame(player: GamePlayer, frame_number: int, rolls: List[int]) -> None:
    for frame in player.frames:
        if frame.frame_number == frame_number:
            frame.rolls = list(rolls)
            return
    player.frames.append(
        GameFrame(id=uuid.uuid4().hex, frame_number=frame_number, rolls=list(rolls))
    )


def _player_score(player: GamePlayer) -> PlayerScoreOut:
    score = bowling.calculate_score(player.frame_rolls())
    return PlayerScoreOut(
        playerId=player.player_id,
        name=player.name,
        frames=[CalculatedFrameOut(**frame.to_dict()) for frame in score.frames],
        total=score.total,
        complete=score.complete,
    )


def _winners(entries: List[PlayerScoreOut]) -> List[str]:
    if not entries or not all(e.complete for e in entries):
        return []
    best = max(e.total for e in entries)
    return [e.playerId for e in entries if e.total == best]


async def create_game(body: GameCreate, session: AsyncSession) -> GameCreatedOut:
    try:
        roster = validate_roster(
            [p.model_dump() for p in body.players],
            min_players=MIN_PLAYERS,
            max_players=MAX_PLAYERS,
        )
    except ValidationError as exc:
        raise http_problem(status_code=400, detail=exc.detail, code="invalid_players")

    gid = uuid.uuid4().hex
    game = Game(id=gid)
    game.players = [
        GamePlayer(
            id=uuid.uuid4().hex,
            player_id=p["playerId"],
            name=p["name"],
            position=idx,
        )
        for idx, p in enumerate(roster)
    ]
    session.add(game)
    await session.commit()
    logger.info("Started game %s with %d players", gid, len(roster))
    return GameCreatedOut(
        gameId=gid,
        players=[PlayerOut(playerId=p["playerId"], name=p["name"]) for p in roster],
    )


async def submit_frame_scores(
    game_id: str,
    frame_number: int,
    body: FrameScoresIn,
    session: AsyncSession,
) -> SubmitOut:
    frame_number = _check_frame_number(frame_number)
    game = await _get_game(session, game_id)

    dup_ids = [
        pid for pid, cnt in Counter(e.playerId for e in body.rolls).items() if cnt > 1
    ]
    if dup_ids:
        raise http_problem(
            status_code=400,
            detail=f"duplicate players: {', '.join(dup_ids)}",
            code="duplicate_players",
        )

    # Every entry is validated before anything is recorded.
    parsed: list[tuple[GamePlayer, List[int]]] = []
    for entry in body.rolls:
        player = _find_player(game, entry.playerId)
        rolls = _parse_or_problem(game_id, entry.playerId, entry.rolls, frame_number)
        parsed.append((player, rolls))

    for player, rolls in parsed:
        _record_frame(player, frame_number, rolls)
    await session.commit()
    await scoreboard_cache.invalidate(game_id)
    logger.info(
        "Recorded frame %d for %d player(s) in game %s",
        frame_number,
        len(parsed),
        game_id,
    )
    return SubmitOut()


async def submit_player_frame(
    game_id: str,
    player_id: str,
    frame_number: int,
    body: FrameRollsIn,
    session: AsyncSession,
) -> PlayerScoreOut:
    frame_number = _check_frame_number(frame_number)
    game = await _get_game(session, game_id)
    player = _find_player(game, player_id)
    rolls = _parse_or_problem(game_id, player_id, body.rolls, frame_number)

    _record_frame(player, frame_number, rolls)
    await session.commit()
    await scoreboard_cache.invalidate(game_id)
    logger.info("Recorded frame %d for player %s in game %s", frame_number, player_id, game_id)
    return _player_score(player)


async def get_scoreboard(game_id: str, session: AsyncSession) -> ScoreboardOut:
    # Captured before reading so a submission that lands mid-read wins.
    generation = await scoreboard_cache.generation(game_id)
    cached = await scoreboard_cache.get(game_id)
    if cached is not None:
        return cached

    game = await _get_game(session, game_id)
    entries = [_player_score(p) for p in game.players]
    result = ScoreboardOut(scoreboard=entries, winners=_winners(entries))
    if not await scoreboard_cache.set(game_id, result, generation=generation):
        logger.debug("Scoreboard for game %s changed while reading; not cached", game_id)
    return result


# POST /api/v0/games
@router.post("", response_model=GameCreatedOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(submit_rate_limit, key_func=_client_ip)
async def create_game_route(
    request: Request,
    body: GameCreate,
    session: AsyncSession = Depends(get_session),
) -> GameCreatedOut:
    return await create_game(body, session)


# GET /api/v0/games/roll-options?frame=10&rolls=X&rolls=5
@router.get("/roll-options", response_model=RollOptionsOut)
async def roll_options(
    frame: int = Query(..., ge=1, le=FRAMES, description="Frame number, 1-10"),
    rolls: List[str] = Query(default=[], description="Tokens entered so far"),
) -> RollOptionsOut:
    try:
        options = next_roll_options(rolls, frame)
    except ValidationError as exc:
        raise InvalidRolls(exc.detail)
    return RollOptionsOut(
        frame=frame,
        options=options,
        complete=is_frame_complete(rolls, frame),
    )


# GET /api/v0/games/{game_id}
@router.get("/{game_id}", response_model=GameOut)
async def get_game(game_id: str, session: AsyncSession = Depends(get_session)) -> GameOut:
    game = await _get_game(session, game_id)
    return GameOut(
        gameId=game.id,
        players=[
            PlayerFramesOut(playerId=p.player_id, name=p.name, frames=p.frame_rolls())
            for p in game.players
        ],
    )


@router.post("/{game_id}/frames/{frame_number}/scores", response_model=SubmitOut)
@limiter.limit(submit_rate_limit, key_func=_client_ip)
async def submit_frame_scores_route(
    request: Request,
    game_id: str,
    frame_number: int,
    body: FrameScoresIn,
    session: AsyncSession = Depends(get_session),
) -> SubmitOut:
    return await submit_frame_scores(game_id, frame_number, body, session)


@router.post(
    "/{game_id}/players/{player_id}/frames/{frame_number}",
    response_model=PlayerScoreOut,
)
@limiter.limit(submit_rate_limit, key_func=_client_ip)
async def submit_player_frame_route(
    request: Request,
    game_id: str,
    player_id: str,
    frame_number: int,
    body: FrameRollsIn,
    session: AsyncSession = Depends(get_session),
) -> PlayerScoreOut:
    return await submit_player_frame(game_id, player_id, frame_number, body, session)


# GET /api/v0/games/{game_id}/scoreboard
@router.get("/{game_id}/scoreboard", response_model=ScoreboardOut)
async def scoreboard(
    game_id: str, session: AsyncSession = Depends(get_session)
) -> ScoreboardOut:
    return await get_scoreboard(game_id, session)
