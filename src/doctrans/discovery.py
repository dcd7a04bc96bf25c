from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .xml_io import XML_SUFFIX

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak.xml"
ASSEMBLY_SUFFIX = ".dll"

if sys.platform == "win32":
    PROTECTED_ROOTS: tuple[Path, ...] = (Path(r"C:\Program Files"),)
else:
    PROTECTED_ROOTS = (Path("/usr/share/dotnet"), Path("/usr/lib/dotnet"))


def is_privileged() -> bool:
    if sys.platform == "win32":
        import ctypes

        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def _is_under(path: Path, roots: Sequence[Path]) -> bool:
    normalized = os.path.normcase(str(path))
    for root in roots:
        prefix = os.path.normcase(str(root))
        if normalized == prefix or normalized.startswith(prefix.rstrip("\\/") + os.sep):
            return True
    return False


def should_skip(
    path: Path,
    *,
    exclude_files: Iterable[str] = (),
    skip_no_dll: bool = True,
    protected_roots: Sequence[Path] = (),
    privileged: bool = False,
) -> str | None:
    """Return why ``path`` is filtered out, or None when it should be processed."""
    if path.name.endswith(BACKUP_SUFFIX):
        return "backup file"
    if path.name in set(exclude_files):
        return "excluded by name"
    if skip_no_dll and not path.with_suffix(ASSEMBLY_SUFFIX).exists():
        return "no sibling assembly"
    if protected_roots and not privileged and _is_under(path, protected_roots):
        return "protected location"
    return None


def discover_documents(
    include_dirs: Iterable[str | Path],
    *,
    exclude_files: Iterable[str] = (),
    skip_no_dll: bool = True,
    check_protected: bool = False,
    protected_roots: Sequence[Path] = PROTECTED_ROOTS,
    exclude_dir_names: Iterable[str] = (),
) -> Iterator[Path]:
    """Yield every XML file under the include dirs that passes the filtering policy.

    ``check_protected`` is only needed by passes that write next to the source files.
    Files inside a folder named in ``exclude_dir_names`` (patch output) are ignored.
    """
    excluded = set(exclude_files)
    excluded_dirs = set(exclude_dir_names)
    roots = tuple(protected_roots) if check_protected else ()
    privileged = is_privileged() if roots else False
    for directory in include_dirs:
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Include directory %s does not exist, skipping", directory)
            continue
        for path in sorted(directory.rglob(f"*{XML_SUFFIX}")):
            if not path.is_file():
                continue
            if excluded_dirs and excluded_dirs.intersection(path.relative_to(directory).parts[:-1]):
                continue
            reason = should_skip(
                path,
                exclude_files=excluded,
                skip_no_dll=skip_no_dll,
                protected_roots=roots,
                privileged=privileged,
            )
            if reason:
                logger.debug("Skipping %s (%s)", path, reason)
                continue
            yield path
