"""Battle model for the card battle ledger.

A battle is created by its first player and resolved exactly once with an
authority-signed outcome.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Battle(Base):
    """Represents a battle between two characters.

    Attributes:
        id: Battle id allocated from the ledger counter (not autoincremented)
        name: Free-form battle name, not unique
        player1: Address of the creator
        player2: Address of the opponent, set on resolution
        player1_token_id: Creator's character token, set on resolution
        player2_token_id: Opponent's character token, set on resolution
        start_time: When the battle was registered
        resolved: Whether an outcome has been committed
    """

    __tablename__ = "battles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    player1: Mapped[str] = mapped_column(String(42), nullable=False)
    player2: Mapped[str | None] = mapped_column(String(42), nullable=True)
    player1_token_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    player2_token_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_battles_player1", "player1"),
    )

    def __repr__(self) -> str:
        return f"<Battle(id={self.id}, name='{self.name}', resolved={self.resolved})>"
