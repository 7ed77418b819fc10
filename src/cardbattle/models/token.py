"""Local mirror of NFT ownership."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TokenOwner(Base):
    """Current holder of one NFT token as last recorded by the authority.

    Attributes:
        token_id: NFT token id
        owner: Holder address
        updated_at: When the holder was last written
    """

    __tablename__ = "token_owners"

    token_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<TokenOwner(token_id={self.token_id}, owner='{self.owner}')>"
