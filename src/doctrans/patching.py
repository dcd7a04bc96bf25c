from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence

from .content import fingerprint
from .errors import DocumentError
from .memory import TranslationStore
from .xml_io import DOC_TAGS, IntelliSenseDocument, replace_inner_xml

logger = logging.getLogger(__name__)

DEFAULT_SAVE_FOLDER = "zh-Hans"


class PatchStatus(str, Enum):
    WRITTEN = "written"
    ALREADY_PATCHED = "already_patched"
    NO_TRANSLATIONS = "no_translations"
    FAILED = "failed"


@dataclass(slots=True)
class PatchOutcome:
    source: Path
    destination: Path
    status: PatchStatus
    replaced: int = 0


@dataclass
class PatchReport:
    outcomes: list[PatchOutcome] = field(default_factory=list)
    cancelled: bool = False

    def count(self, status: PatchStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def written(self) -> int:
        return self.count(PatchStatus.WRITTEN)


def destination_for(source: str | Path, save_folder: str = DEFAULT_SAVE_FOLDER) -> Path:
    source = Path(source)
    return source.parent / save_folder / source.name


def patch_document(
    source: str | Path,
    store: TranslationStore,
    language: str,
    *,
    save_folder: str = DEFAULT_SAVE_FOLDER,
    tag_names: Sequence[str] = DOC_TAGS,
) -> PatchOutcome:
    """Write a copy of ``source`` with every stored translation substituted in.

    The source file is never modified. A destination that already exists is left alone,
    and nothing is written when the store holds no translation for the document.
    Raises ``DocumentError`` when the source cannot be read as an IntelliSense file.
    """
    source = Path(source)
    document = IntelliSenseDocument.load(source)
    elements = [(element, fingerprint(content)) for element, content in document.extract(tag_names)]

    destination = destination_for(source, save_folder)
    if destination.exists():
        return PatchOutcome(source, destination, PatchStatus.ALREADY_PATCHED)

    translations = store.bulk_translations_for({digest for _, digest in elements}, language)
    if not translations:
        return PatchOutcome(source, destination, PatchStatus.NO_TRANSLATIONS)

    replaced = 0
    for element, digest in elements:
        translation = translations.get(digest)
        if translation is None:
            continue
        try:
            replace_inner_xml(element, translation)
        except ValueError as exc:
            logger.warning("Leaving <%s> untouched in %s: %s", element.tag, source, exc)
            continue
        replaced += 1

    document.save(destination)
    return PatchOutcome(source, destination, PatchStatus.WRITTEN, replaced=replaced)


def patch_documents(
    paths: Iterable[Path],
    store: TranslationStore,
    language: str,
    *,
    save_folder: str = DEFAULT_SAVE_FOLDER,
    tag_names: Sequence[str] = DOC_TAGS,
    cancel: threading.Event | None = None,
) -> PatchReport:
    report = PatchReport()
    for path in paths:
        if cancel is not None and cancel.is_set():
            report.cancelled = True
            break
        logger.info("Processing %s", path)
        try:
            outcome = patch_document(path, store, language, save_folder=save_folder, tag_names=tag_names)
        except DocumentError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            outcome = PatchOutcome(path, destination_for(path, save_folder), PatchStatus.FAILED)
        else:
            if outcome.status is PatchStatus.WRITTEN:
                logger.info("Wrote %s (%d fragments replaced)", outcome.destination, outcome.replaced)
            else:
                logger.info("Skipping %s: %s", path, outcome.status.value.replace("_", " "))
        report.outcomes.append(outcome)
    return report
