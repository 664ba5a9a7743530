"""XML helpers for RSS 2.0 and Atom payloads.

``parse_xml`` turns a document into nested dicts and lists:

* attributes are keys prefixed with ``@_``;
* element text is stored under ``#text``;
* CDATA sections are stored under ``__cdata``;
* an element with no attributes, children or CDATA collapses to its trimmed
  text;
* a tag that repeats under the same parent becomes a list.

The helpers below smooth over the one-or-many and string-or-object ambiguity
that shape produces.
"""

from __future__ import annotations

import re
from typing import Any
from xml.parsers import expat

_ATTR_PREFIX = "@_"
_TEXT_KEY = "#text"
_CDATA_KEY = "__cdata"


class _Node:
    __slots__ = ("attrs", "children", "text", "cdata", "in_cdata")

    def __init__(self, attrs: dict[str, str]) -> None:
        self.attrs = attrs
        self.children: dict[str, Any] = {}
        self.text: list[str] = []
        self.cdata: list[str] = []
        self.in_cdata = False

    def add_child(self, name: str, value: Any) -> None:
        if name not in self.children:
            self.children[name] = value
        elif isinstance(self.children[name], list):
            self.children[name].append(value)
        else:
            self.children[name] = [self.children[name], value]

    def value(self) -> Any:
        text = "".join(self.text).strip()
        cdata = "".join(self.cdata).strip()
        if not self.attrs and not self.children and not self.cdata:
            return text
        result: dict[str, Any] = {
            f"{_ATTR_PREFIX}{key}": val for key, val in self.attrs.items()
        }
        result.update(self.children)
        if text:
            result[_TEXT_KEY] = text
        if self.cdata:
            result[_CDATA_KEY] = cdata
        return result


def parse_xml(text: str | bytes) -> dict[str, Any]:
    """Parse an XML document into a nested dict keyed by element name.

    Raises ValueError if the document is not well-formed.
    """
    parser = expat.ParserCreate()
    parser.SetParamEntityParsing(expat.XML_PARAM_ENTITY_PARSING_NEVER)
    root: dict[str, Any] = {}
    stack: list[tuple[str, _Node]] = []

    def start(name: str, attrs: dict[str, str]) -> None:
        stack.append((name, _Node(attrs)))

    def end(name: str) -> None:
        tag, node = stack.pop()
        if stack:
            stack[-1][1].add_child(tag, node.value())
        else:
            root[tag] = node.value()

    def chars(data: str) -> None:
        if not stack:
            return
        node = stack[-1][1]
        if node.in_cdata:
            node.cdata.append(data)
        else:
            node.text.append(data)

    def start_cdata() -> None:
        if stack:
            stack[-1][1].in_cdata = True

    def end_cdata() -> None:
        if stack:
            stack[-1][1].in_cdata = False

    parser.StartElementHandler = start
    parser.EndElementHandler = end
    parser.CharacterDataHandler = chars
    parser.StartCdataSectionHandler = start_cdata
    parser.EndCdataSectionHandler = end_cdata

    try:
        parser.Parse(text, True)
    except expat.ExpatError as exc:
        raise ValueError(f"Malformed XML: {exc}") from exc
    return root


def extract_text(value: Any) -> str:
    """Best plain string for a node: CDATA, then text node, then the raw value."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        if value.get(_CDATA_KEY):
            return str(value[_CDATA_KEY]).strip()
        if value.get(_TEXT_KEY):
            return str(value[_TEXT_KEY]).strip()
        return ""
    if isinstance(value, list):
        return extract_text(value[0]) if value else ""
    return str(value).strip()


def _link_href(link: Any) -> str:
    if isinstance(link, str):
        return link.strip()
    if isinstance(link, dict):
        return str(link.get(f"{_ATTR_PREFIX}href") or link.get(_TEXT_KEY) or "").strip()
    return ""


def _link_rel(link: Any) -> str | None:
    if isinstance(link, dict):
        return link.get(f"{_ATTR_PREFIX}rel")
    return None


def extract_link(value: Any) -> str:
    """Return the URL of a link node.

    Atom entries may carry several ``<link>`` elements with different ``rel``
    values; the first ``alternate`` (or rel-less) one wins, else the first.
    """
    if not value:
        return ""
    if isinstance(value, list):
        for link in value:
            if _link_rel(link) in (None, "alternate"):
                return _link_href(link)
        return _link_href(value[0])
    return _link_href(value)


def ensure_array(value: Any) -> list[Any]:
    """Normalize a one-or-many XML child into a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&(#\d+|#[xX][0-9a-fA-F]+|lt|gt|amp|quot|apos|nbsp);")
_WHITESPACE_RE = re.compile(r"\s+")
_NAMED_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
}


def _decode_entity(match: re.Match[str]) -> str:
    entity = match.group(1)
    if entity in _NAMED_ENTITIES:
        return _NAMED_ENTITIES[entity]
    try:
        if entity[1] in "xX":
            return chr(int(entity[2:], 16))
        return chr(int(entity[1:]))
    except (ValueError, OverflowError):
        return match.group(0)


def strip_html(html: str | None) -> str:
    """Reduce an HTML fragment to plain text."""
    if not html:
        return ""
    cleaned = _SCRIPT_RE.sub("", html)
    cleaned = _STYLE_RE.sub("", cleaned)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _ENTITY_RE.sub(_decode_entity, cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()
