"""Player and character progression models.

A player is identified by an account address.  Character rows hang off the
player and are keyed by the NFT token id of the card.
"""

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampCreatedMixin


class Player(Base, TimestampCreatedMixin):
    """Represents a player account.

    Rows are created either by registration or, with an empty name, the first
    time the address takes part in a resolved battle.

    Attributes:
        address: Checksummed account address (primary key)
        name: Display name, empty until the player registers
        total_wins: Battles won across all characters
        total_losses: Battles lost across all characters
        experience: Cumulative experience across all characters
    """

    __tablename__ = "players"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    total_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    characters: Mapped[list["CharacterStats"]] = relationship(
        "CharacterStats", back_populates="player", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Player(address='{self.address}', name='{self.name}')>"


class CharacterStats(Base):
    """Progression of one NFT character owned by a player.

    Base health/mana/attack/defense are derived from ``character_class`` and
    are not stored.

    Attributes:
        id: Surrogate primary key
        player_address: Foreign key to player
        token_id: NFT token id of the character card
        character_class: Ordinal of :class:`~cardbattle.domain.enums.CharacterClass`
        level: Current level
        exp: Cumulative experience of this character
        wins: Battles won with this character
        losses: Battles lost with this character
    """

    __tablename__ = "character_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_address: Mapped[str] = mapped_column(
        String(42), ForeignKey("players.address"), nullable=False
    )
    token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    character_class: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    exp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    player: Mapped["Player"] = relationship("Player", back_populates="characters")

    __table_args__ = (
        UniqueConstraint("player_address", "token_id", name="uq_character_stats_owner_token"),
        CheckConstraint("level >= 0", name="ck_character_stats_level"),
        CheckConstraint("exp >= 0", name="ck_character_stats_exp"),
    )

    def __repr__(self) -> str:
        return (
            f"<CharacterStats(player='{self.player_address}', token={self.token_id}, "
            f"level={self.level}, exp={self.exp})>"
        )
