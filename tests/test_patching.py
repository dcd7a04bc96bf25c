from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from doctrans.content import Candidate, fingerprint
from doctrans.memory import TranslationStore
from doctrans.patching import PatchStatus, destination_for, patch_document, patch_documents
from doctrans.xml_io import IntelliSenseDocument, inner_xml

FIXTURES = Path(__file__).parent / "fixtures"

HELLO = 'Hello <see cref="T:System.String"/> World'
HELLO_ZH = '你好 <see cref="T:System.String"/> 世界'


@pytest.fixture
def store(tmp_path: Path) -> TranslationStore:
    store = TranslationStore(f"sqlite:///{tmp_path / 'memory.db'}")
    store.create_schema()
    return store


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "lib" / "Sample.Library.xml"
    path.parent.mkdir()
    shutil.copy(FIXTURES / "Sample.Library.xml", path)
    return path


def _translate(store: TranslationStore, text: str, translation: str, language: str = "zh") -> None:
    store.insert_if_absent([Candidate(content=text.strip(), hash=fingerprint(text))])
    store.append_translations([(fingerprint(text), language, translation)])


def test_destination_for() -> None:
    assert destination_for(Path("/sdk/ref/A.xml"), "zh-Hans") == Path("/sdk/ref/zh-Hans/A.xml")


def test_patch_replaces_known_fragments_only(source: Path, store: TranslationStore) -> None:
    original_bytes = source.read_bytes()
    _translate(store, HELLO, HELLO_ZH)
    _translate(store, "Greets the specified person.", "问候指定的人。")

    outcome = patch_document(source, store, "zh")

    assert outcome.status is PatchStatus.WRITTEN
    assert outcome.destination == source.parent / "zh-Hans" / source.name
    # the multi-line summary and the remarks share one fingerprint
    assert outcome.replaced == 3
    assert source.read_bytes() == original_bytes

    patched = IntelliSenseDocument.load(outcome.destination)
    contents = [content for _, content in patched.extract(["summary", "param", "remarks"])]
    assert contents[0] == HELLO_ZH
    assert contents[1] == "问候指定的人。"
    assert contents[2] == "The name of the person."
    assert contents[4] == "问候指定的人。"
    [param] = [element for element, _ in patched.extract(["param"])]
    assert param.get("name") == "name"


def test_patch_is_written_once(source: Path, store: TranslationStore) -> None:
    _translate(store, HELLO, HELLO_ZH)

    first = patch_document(source, store, "zh")
    written = first.destination.read_bytes()
    mtime = first.destination.stat().st_mtime_ns

    _translate(store, "The name of the person.", "人的名字。")
    second = patch_document(source, store, "zh")

    assert second.status is PatchStatus.ALREADY_PATCHED
    assert first.destination.read_bytes() == written
    assert first.destination.stat().st_mtime_ns == mtime


def test_patch_output_is_deterministic(tmp_path: Path, source: Path, store: TranslationStore) -> None:
    _translate(store, HELLO, HELLO_ZH)
    twin = tmp_path / "twin" / source.name
    twin.parent.mkdir()
    shutil.copy(source, twin)

    a = patch_document(source, store, "zh")
    b = patch_document(twin, store, "zh")

    assert a.destination.read_bytes() == b.destination.read_bytes()


def test_patch_without_translations_writes_nothing(source: Path, store: TranslationStore) -> None:
    _translate(store, HELLO, HELLO_ZH, language="ja")

    outcome = patch_document(source, store, "zh")

    assert outcome.status is PatchStatus.NO_TRANSLATIONS
    assert not outcome.destination.parent.exists()


def test_patch_documents_reports_each_file(tmp_path: Path, source: Path, store: TranslationStore) -> None:
    _translate(store, HELLO, HELLO_ZH)
    broken = tmp_path / "Broken.xml"
    broken.write_text("not xml", encoding="utf-8")

    report = patch_documents([source, broken, source], store, "zh", save_folder="out")

    assert [o.status for o in report.outcomes] == [
        PatchStatus.WRITTEN,
        PatchStatus.FAILED,
        PatchStatus.ALREADY_PATCHED,
    ]
    assert report.written == 1
    assert (source.parent / "out" / source.name).exists()


def test_patch_leaves_element_when_stored_translation_is_malformed(source: Path, store: TranslationStore) -> None:
    _translate(store, HELLO, "<c>broken")
    _translate(store, "The name of the person.", "人的名字。")

    outcome = patch_document(source, store, "zh")

    assert outcome.replaced == 1
    patched = IntelliSenseDocument.load(outcome.destination)
    first_summary = next(patched.iter_elements(["summary"]))
    assert inner_xml(first_summary) == HELLO
