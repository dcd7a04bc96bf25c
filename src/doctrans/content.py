from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Iterable

DEFAULT_CONTENT_FILTER = r"[\u4e00-\u9fa5]"

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends.

    Only used to compute fingerprints; stored content keeps its formatting.
    """
    return _WHITESPACE.sub(" ", text).strip()


def fingerprint(text: str) -> str:
    return hashlib.md5(normalize(text).encode("utf-8")).hexdigest()


def is_candidate(text: str, content_filter: str | re.Pattern[str] | None = DEFAULT_CONTENT_FILTER) -> bool:
    """A fragment needs translating when it is non-blank and not already in the target script."""
    if not text or not text.strip():
        return False
    if content_filter is None:
        return True
    return re.search(content_filter, text) is None


@dataclass(slots=True, frozen=True)
class Candidate:
    content: str
    hash: str


def collect_candidates(
    fragments: Iterable[str],
    content_filter: str | re.Pattern[str] | None = DEFAULT_CONTENT_FILTER,
) -> list[Candidate]:
    """Turn raw inner contents into distinct candidates, keeping first-seen order."""
    seen: set[str] = set()
    candidates: list[Candidate] = []
    for fragment in fragments:
        if not is_candidate(fragment, content_filter):
            continue
        digest = fingerprint(fragment)
        if digest in seen:
            continue
        seen.add(digest)
        candidates.append(Candidate(content=fragment.strip(), hash=digest))
    return candidates
