from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Collection, Iterable, Iterator, Sequence

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..content import Candidate
from ..errors import StoreError
from .models import Base, Original, Translation

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _has_translation(language: str):
    return (
        select(Translation.id)
        .where(Translation.original_hash == Original.hash, Translation.language == language)
        .exists()
    )


class TranslationStore:
    """Persistent mapping fingerprint -> original and (fingerprint, language) -> translation.

    Originals are inserted only when absent and translations are only appended; nothing
    here updates or deletes a row. Every public method runs in its own transaction.
    """

    def __init__(self, url_or_engine: str | Engine) -> None:
        if isinstance(url_or_engine, Engine):
            self.engine = url_or_engine
        else:
            self.engine = create_engine(url_or_engine)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(f"Translation memory operation failed: {exc}") from exc

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"Cannot create translation memory schema: {exc}") from exc

    def insert_if_absent(self, candidates: Iterable[Candidate]) -> int:
        """Insert originals whose fingerprint is not stored yet; returns how many were added."""
        unique: dict[str, Candidate] = {}
        for candidate in candidates:
            unique.setdefault(candidate.hash, candidate)
        if not unique:
            return 0
        with self._transaction() as session:
            existing = set(session.scalars(select(Original.hash).where(Original.hash.in_(list(unique)))))
            new_rows = [
                Original(hash=digest, content=candidate.content)
                for digest, candidate in unique.items()
                if digest not in existing
            ]
            session.add_all(new_rows)
        return len(new_rows)

    def pending_for_language(
        self,
        language: str,
        *,
        exclude: Collection[str] = (),
        limit: int | None = None,
    ) -> list[Original]:
        """Originals without any translation in ``language``, oldest first."""
        stmt = select(Original).where(~_has_translation(language))
        if exclude:
            stmt = stmt.where(Original.hash.not_in(list(exclude)))
        stmt = stmt.order_by(Original.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._transaction() as session:
            return list(session.scalars(stmt))

    def count_pending(self, language: str) -> int:
        stmt = select(func.count()).select_from(Original).where(~_has_translation(language))
        with self._transaction() as session:
            return session.scalar(stmt) or 0

    def count_originals(self) -> int:
        with self._transaction() as session:
            return session.scalar(select(func.count()).select_from(Original)) or 0

    def bulk_translations_for(self, fingerprints: Iterable[str], language: str) -> dict[str, str]:
        """Map each fingerprint with a stored translation to its first translation row."""
        wanted = list(set(fingerprints))
        if not wanted:
            return {}
        stmt = (
            select(Translation.original_hash, Translation.content)
            .where(Translation.original_hash.in_(wanted), Translation.language == language)
            .order_by(Translation.id)
        )
        found: dict[str, str] = {}
        with self._transaction() as session:
            for digest, content in session.execute(stmt):
                found.setdefault(digest, content)
        return found

    def append_translations(self, batch: Sequence[tuple[str, str, str]]) -> int:
        """Append (fingerprint, language, content) rows in a single transaction."""
        if not batch:
            return 0
        with self._transaction() as session:
            session.add_all(
                Translation(original_hash=digest, language=language, content=content)
                for digest, language, content in batch
            )
        logger.debug("Appended %d translations", len(batch))
        return len(batch)
