"""Reading, querying and writing IntelliSense XML documentation files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, Sequence
from xml.sax.saxutils import escape

from lxml import etree

from .errors import DocumentError

XML_SUFFIX = ".xml"
DOC_TAGS: tuple[str, ...] = ("summary", "param", "returns", "remarks", "typeparam")


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def _is_intellisense(root: etree._Element) -> bool:
    if root.tag != "doc":
        return False
    assembly = root.find("assembly")
    return assembly is not None and assembly.find("name") is not None and root.find("members") is not None


def inner_xml(element: etree._Element) -> str:
    """Serialize the content between an element's start and end tags."""
    parts = [escape(element.text)] if element.text else []
    for child in element:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return "".join(parts)


def _parse_fragment(fragment: str) -> etree._Element:
    return etree.fromstring(f"<root>{fragment}</root>".encode("utf-8"), parser=_parser())


def is_valid_fragment(fragment: str) -> bool:
    """True when ``fragment`` is well-formed XML content once wrapped in a root element."""
    try:
        _parse_fragment(fragment)
    except (etree.XMLSyntaxError, ValueError):
        return False
    return True


def replace_inner_xml(element: etree._Element, fragment: str) -> None:
    """Swap the element's children and text for ``fragment``, keeping its attributes and tail."""
    try:
        wrapper = _parse_fragment(fragment)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ValueError(f"Invalid XML fragment: {exc}") from exc
    for child in list(element):
        element.remove(child)
    element.text = wrapper.text
    for child in list(wrapper):
        element.append(child)


class IntelliSenseDocument:
    """A parsed ``<doc><assembly><name/></assembly><members/></doc>`` file."""

    def __init__(self, path: Path, tree: etree._ElementTree) -> None:
        self.path = path
        self._tree = tree

    @classmethod
    def load(cls, path: str | Path) -> "IntelliSenseDocument":
        path = Path(path)
        try:
            tree = etree.parse(str(path), parser=_parser())
        except (OSError, etree.XMLSyntaxError) as exc:
            raise DocumentError(f"Cannot parse {path}: {exc}") from exc
        if not _is_intellisense(tree.getroot()):
            raise DocumentError(f"{path} is not an IntelliSense documentation file")
        return cls(path, tree)

    @property
    def root(self) -> etree._Element:
        return self._tree.getroot()

    def iter_elements(self, tag_names: Iterable[str] = DOC_TAGS) -> Iterator[etree._Element]:
        """Every element named in ``tag_names``, at any depth, in document order."""
        tags = tuple(tag_names)
        if not tags:
            return iter(())
        return self.root.iter(*tags)

    def extract(self, tag_names: Sequence[str] = DOC_TAGS) -> list[tuple[etree._Element, str]]:
        return [(element, inner_xml(element)) for element in self.iter_elements(tag_names)]

    def to_bytes(self) -> bytes:
        return etree.tostring(self._tree, encoding="utf-8", xml_declaration=True)

    def save(self, destination: str | Path) -> Path:
        """Write the document, creating parent folders; the target appears only once fully written."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(self.to_bytes())
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return destination
