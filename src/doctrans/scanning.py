from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .content import DEFAULT_CONTENT_FILTER, Candidate, collect_candidates
from .errors import DocumentError
from .memory import TranslationStore
from .xml_io import DOC_TAGS, IntelliSenseDocument

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    documents_seen: int = 0
    documents_scanned: int = 0
    documents_failed: int = 0
    candidates: int = 0
    originals_added: int = 0
    cancelled: bool = False


def document_candidates(
    document: IntelliSenseDocument,
    *,
    tag_names: Sequence[str] = DOC_TAGS,
    content_filter: str | re.Pattern[str] | None = DEFAULT_CONTENT_FILTER,
) -> list[Candidate]:
    return collect_candidates((content for _, content in document.extract(tag_names)), content_filter)


def scan_documents(
    paths: Iterable[Path],
    store: TranslationStore,
    *,
    tag_names: Sequence[str] = DOC_TAGS,
    content_filter: str | re.Pattern[str] | None = DEFAULT_CONTENT_FILTER,
    cancel: threading.Event | None = None,
) -> ScanReport:
    """Record every untranslated fragment of ``paths`` as an original.

    Unreadable or foreign documents are logged and skipped; store failures propagate.
    """
    report = ScanReport()
    for path in paths:
        if cancel is not None and cancel.is_set():
            report.cancelled = True
            break
        report.documents_seen += 1
        try:
            document = IntelliSenseDocument.load(path)
        except DocumentError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            report.documents_failed += 1
            continue

        logger.info("Processing %s", path)
        candidates = document_candidates(document, tag_names=tag_names, content_filter=content_filter)
        added = store.insert_if_absent(candidates)
        report.documents_scanned += 1
        report.candidates += len(candidates)
        report.originals_added += added
        if added:
            logger.info("Found %d new contents in %s", added, path)
    return report
