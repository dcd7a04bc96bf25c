"""Fill the translation memory by asking the translation service for missing fragments.

Work happens in rounds. Each round reads a bounded slice of the pending originals,
translates it on a pool of ``parallelism`` threads and then appends every accepted
translation in one store call. A fragment that fails (any error raised by the
translator, a response outside the ```xml fence, an empty fence or malformed XML) is
skip-listed for the rest of the run. The run ends when every pending original has been
skip-listed or when cancellation is requested.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from .errors import TranslationServiceError
from .memory import Original, TranslationStore
from .xml_io import is_valid_fragment

logger = logging.getLogger(__name__)

DEFAULT_PARALLELISM = 8
DEFAULT_BATCH_MULTIPLIER = 20

FENCE_PATTERN = re.compile(r"\A```xml[ \t]*\r?\n(.*?)\r?\n?```\Z", re.DOTALL)


class Translator(Protocol):
    def translate_fragment(self, fragment: str, *, language: str, temperature: float = 0.0) -> str: ...


class ItemState(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    TRANSLATED = "translated"
    SKIPPED = "skipped"


def extract_fenced(response: str) -> str | None:
    """Return the text inside a single ```xml fenced block, or None if the response is anything else."""
    match = FENCE_PATTERN.match(response.strip())
    if match is None:
        return None
    return match.group(1)


@dataclass
class FillReport:
    language: str
    rounds: int = 0
    dispatched: int = 0
    translated: int = 0
    skipped: int = 0
    cancelled: bool = False
    states: dict[str, ItemState] = field(default_factory=dict)


class _RunLedger:
    """Mutex-guarded record of item states, the run's skip-set and the current round's successes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, ItemState] = {}
        self._skipped: set[str] = set()
        self._round: list[tuple[str, str]] = []

    def mark_pending(self, digest: str) -> None:
        with self._lock:
            self._states.setdefault(digest, ItemState.PENDING)

    def mark_dispatched(self, digest: str) -> None:
        with self._lock:
            self._states[digest] = ItemState.DISPATCHED

    def record_success(self, digest: str, content: str) -> None:
        with self._lock:
            self._states[digest] = ItemState.TRANSLATED
            self._round.append((digest, content))

    def record_failure(self, digest: str) -> None:
        with self._lock:
            self._states[digest] = ItemState.SKIPPED
            self._skipped.add(digest)

    def take_round(self) -> list[tuple[str, str]]:
        with self._lock:
            batch, self._round = self._round, []
            return batch

    def skipped(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._skipped)

    def states(self) -> dict[str, ItemState]:
        with self._lock:
            return dict(self._states)


class FillEngine:
    def __init__(
        self,
        store: TranslationStore,
        translator: Translator,
        language: str,
        *,
        parallelism: int = DEFAULT_PARALLELISM,
        batch_multiplier: int = DEFAULT_BATCH_MULTIPLIER,
        temperature: float = 0.0,
    ) -> None:
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")
        if batch_multiplier < 1:
            raise ValueError(f"batch_multiplier must be at least 1, got {batch_multiplier}")
        self.store = store
        self.translator = translator
        self.language = language
        self.parallelism = parallelism
        self.batch_multiplier = batch_multiplier
        self.temperature = temperature

    @property
    def round_size(self) -> int:
        return self.parallelism * self.batch_multiplier

    def run(self, cancel: threading.Event | None = None) -> FillReport:
        """Translate pending originals until none are left to try.

        Raises ``StoreError`` if a round cannot be committed; earlier rounds stay committed.
        """
        cancel = cancel or threading.Event()
        ledger = _RunLedger()
        report = FillReport(language=self.language)

        with ThreadPoolExecutor(max_workers=self.parallelism, thread_name_prefix="doctrans-fill") as pool:
            while True:
                if cancel.is_set():
                    report.cancelled = True
                    break
                skipped = ledger.skipped()
                batch = self.store.pending_for_language(self.language, exclude=skipped, limit=self.round_size)
                if not batch:
                    break

                report.rounds += 1
                report.dispatched += self._run_round(pool, batch, ledger, cancel)
                successes = ledger.take_round()
                if successes:
                    self.store.append_translations(
                        [(digest, self.language, content) for digest, content in successes]
                    )
                    report.translated += len(successes)

                skipped = ledger.skipped()
                remaining = self.store.count_pending(self.language)
                logger.info(
                    "Round %d (%s): %d translated, %d skipped so far, %d still pending",
                    report.rounds,
                    self.language,
                    len(successes),
                    len(skipped),
                    remaining,
                )
                if remaining <= len(skipped):
                    break

        report.cancelled = report.cancelled or cancel.is_set()
        report.skipped = len(ledger.skipped())
        report.states = ledger.states()
        return report

    def _run_round(
        self,
        pool: ThreadPoolExecutor,
        batch: Sequence[Original],
        ledger: _RunLedger,
        cancel: threading.Event,
    ) -> int:
        futures = []
        for original in batch:
            ledger.mark_pending(original.hash)
            if cancel.is_set():
                break
            futures.append(pool.submit(self._translate_one, original.hash, original.content, ledger, cancel))
        dispatched = 0
        for future in as_completed(futures):
            if future.result():
                dispatched += 1
        return dispatched

    def _translate_one(self, digest: str, content: str, ledger: _RunLedger, cancel: threading.Event) -> bool:
        if cancel.is_set():
            return False
        ledger.mark_dispatched(digest)
        try:
            response = self.translator.translate_fragment(
                content,
                language=self.language,
                temperature=self.temperature,
            )
        except TranslationServiceError:
            logger.error("Translation service error for %s", digest, exc_info=True)
            ledger.record_failure(digest)
            return True
        except Exception:
            logger.exception("Unexpected error while translating %s", digest)
            ledger.record_failure(digest)
            return True

        fragment = extract_fenced(response)
        if fragment is None:
            logger.warning("Translation rejected (response not fenced as ```xml) for %s: %r", digest, response)
            ledger.record_failure(digest)
            return True
        if not fragment.strip():
            logger.warning("Translation rejected (empty fenced block) for %s", digest)
            ledger.record_failure(digest)
            return True
        if not is_valid_fragment(fragment):
            logger.warning("Translation rejected (malformed XML) for %s: %r", digest, fragment)
            ledger.record_failure(digest)
            return True

        logger.debug("Translated %s:\n  original: %s\n  translation: %s", digest, content, fragment)
        ledger.record_success(digest, fragment)
        return True
