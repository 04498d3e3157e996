from sqlalchemy.orm import relationship
from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from .db import Base


class Game(Base):
    __tablename__ = "game"
    id = Column(String, primary_key=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    players = relationship(
        "GamePlayer",
        cascade="all, delete-orphan",
        order_by="GamePlayer.position",
        back_populates="game",
        lazy="selectin",
    )


class GamePlayer(Base):
    __tablename__ = "game_player"
    id = Column(String, primary_key=True)
    game_id = Column(String, ForeignKey("game.id"), nullable=False)
    player_id = Column(String, nullable=False)  # caller supplied
    name = Column(String, nullable=False)  # names may repeat within a game
    position = Column(Integer, nullable=False)

    game = relationship("Game", back_populates="players")
    frames = relationship(
        "GameFrame",
        cascade="all, delete-orphan",
        order_by="GameFrame.frame_number",
        back_populates="player",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "game_id",
            "player_id",
            name="uq_game_player_game_id_player_id",
        ),
    )

    def frame_rolls(self) -> list[list[int] | None]:
        """Recorded pin counts for frames 1-10, ``None`` where unplayed."""

        rolls: list[list[int] | None] = [None] * 10
        for frame in self.frames:
            rolls[frame.frame_number - 1] = list(frame.rolls)
        return rolls


class GameFrame(Base):
    __tablename__ = "game_frame"
    id = Column(String, primary_key=True)
    game_player_id = Column(String, ForeignKey("game_player.id"), nullable=False)
    frame_number = Column(Integer, nullable=False)
    rolls = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    player = relationship("GamePlayer", back_populates="frames")

    __table_args__ = (
        UniqueConstraint(
            "game_player_id",
            "frame_number",
            name="uq_game_frame_player_frame",
        ),
    )
