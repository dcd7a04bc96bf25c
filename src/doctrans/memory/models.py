from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

HASH_LENGTH = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Original(TimestampMixin, Base):
    """A source fragment, keyed by the fingerprint of its normalized content.

    Rows are written once by the scan pass and only read afterwards.
    """

    __tablename__ = "originals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hash: Mapped[str] = mapped_column(String(HASH_LENGTH), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    translations: Mapped[list["Translation"]] = relationship(
        back_populates="original",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"Original(id={self.id!r}, hash={self.hash!r})"


class Translation(TimestampMixin, Base):
    """An append-only rendering of an original in one language.

    (original_hash, language) is deliberately not unique; readers take the first row.
    """

    __tablename__ = "translations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_hash: Mapped[str] = mapped_column(
        String(HASH_LENGTH),
        ForeignKey("originals.hash", ondelete="CASCADE"),
        nullable=False,
    )
    language: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    original: Mapped[Original] = relationship(back_populates="translations")

    __table_args__ = (Index("ix_translations_original_hash", "original_hash"),)

    def __repr__(self) -> str:
        return f"Translation(id={self.id!r}, original_hash={self.original_hash!r}, language={self.language!r})"
