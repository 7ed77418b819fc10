"""Ledger metadata and event log models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class LedgerMeta(Base):
    """Singleton row holding deployment parameters and global counters.

    Attributes:
        id: Always 1
        owner: Authority address whose signatures resolve battles
        nft_contract: Address of the NFT contract the ledger was deployed against
        next_battle_id: Id the next registered battle receives (starts at 1)
        total_battles: Number of registered battles
        deployed_at: When the ledger was initialized
    """

    __tablename__ = "ledger_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)
    nft_contract: Mapped[str] = mapped_column(String(42), nullable=False)
    next_battle_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_battles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deployed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("id = 1", name="ck_ledger_meta_singleton"),
        CheckConstraint("next_battle_id >= 1", name="ck_ledger_meta_next_battle_id"),
    )

    def __repr__(self) -> str:
        return f"<LedgerMeta(owner='{self.owner}', next_battle_id={self.next_battle_id})>"


class LedgerEvent(Base):
    """Append-only log of everything the ledger emitted.

    Attributes:
        id: Sequence number; ordering of the log
        event_type: One of :class:`~cardbattle.domain.enums.EventType`
        payload: Event arguments
        created_at: When the event was emitted
    """

    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('PlayerRegistered', 'BattleRegistered', 'BattleResolved', "
            "'OwnershipTransferred')",
            name="ck_ledger_events_type",
        ),
        Index("idx_ledger_events_type", "event_type"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEvent(id={self.id}, type='{self.event_type}')>"
