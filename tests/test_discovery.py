from __future__ import annotations

from pathlib import Path

from doctrans.discovery import discover_documents, should_skip


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("<doc/>", encoding="utf-8")
    return path


def test_discover_documents_applies_filters(tmp_path: Path) -> None:
    root = tmp_path / "sdk"
    keep = _touch(root / "ref" / "Lib.A.xml")
    _touch(root / "ref" / "Lib.A.dll")
    _touch(root / "ref" / "NoAssembly.xml")
    _touch(root / "ref" / "Lib.A.bak.xml")
    _touch(root / "ref" / "Lib.A.bak.dll")
    _touch(root / "ref" / "Excluded.xml")
    _touch(root / "ref" / "Excluded.dll")
    _touch(root / "ref" / "zh-Hans" / "Lib.A.xml")
    nested = _touch(root / "other" / "deep" / "Lib.B.xml")
    _touch(root / "other" / "deep" / "Lib.B.dll")

    found = list(
        discover_documents(
            [root, tmp_path / "missing"],
            exclude_files=["Excluded.xml"],
            exclude_dir_names=["zh-Hans"],
        )
    )

    assert found == [nested, keep]


def test_discover_documents_without_assembly_check(tmp_path: Path) -> None:
    lonely = _touch(tmp_path / "Lonely.xml")
    assert list(discover_documents([tmp_path], skip_no_dll=False)) == [lonely]


def test_should_skip_protected_locations(tmp_path: Path) -> None:
    protected = tmp_path / "protected"
    path = _touch(protected / "packs" / "Lib.xml")

    assert should_skip(path, skip_no_dll=False, protected_roots=[protected]) == "protected location"
    assert should_skip(path, skip_no_dll=False, protected_roots=[protected], privileged=True) is None
    assert should_skip(path, skip_no_dll=False, protected_roots=[tmp_path / "prot"]) is None
    assert should_skip(path, skip_no_dll=True) == "no sibling assembly"
