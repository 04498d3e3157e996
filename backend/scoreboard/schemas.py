from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


class PlayerIn(BaseModel):
    playerId: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., max_length=100)

    model_config = ConfigDict(extra="forbid")

    @field_validator("playerId", mode="before")
    @classmethod
    def _validate_player_id(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("playerId must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("playerId must not be empty")
        return trimmed


class GameCreate(BaseModel):
    players: List[PlayerIn]


class PlayerOut(BaseModel):
    playerId: str
    name: str


class GameCreatedOut(BaseModel):
    gameId: str
    players: List[PlayerOut]


class PlayerFramesOut(PlayerOut):
    # one entry per frame, ``None`` when unplayed
    frames: List[Optional[List[int]]]


class GameOut(BaseModel):
    gameId: str
    players: List[PlayerFramesOut]


class PlayerRollsIn(BaseModel):
    playerId: str
    rolls: List[Optional[str]]


class FrameScoresIn(BaseModel):
    rolls: List[PlayerRollsIn] = Field(..., min_length=1)


class FrameRollsIn(BaseModel):
    rolls: List[Optional[str]]


class SubmitOut(BaseModel):
    success: bool = True


class CalculatedFrameOut(BaseModel):
    rolls: List[int]
    display: str
    cumulativeTotal: Optional[int] = None


class PlayerScoreOut(BaseModel):
    playerId: str
    name: str
    frames: List[CalculatedFrameOut]
    total: int
    complete: bool


class ScoreboardOut(BaseModel):
    scoreboard: List[PlayerScoreOut]
    winners: List[str] = []


class RollOptionsOut(BaseModel):
    frame: int
    options: List[str]
    complete: bool
