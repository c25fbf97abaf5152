"""
Streaming Sitemap Parser

Incremental parser for sitemaps.org documents (urlset / sitemapindex) and
plain-text sitemaps. Chunks may split tags, entity references or multi-byte
characters anywhere; unconsumed input is carried forward in a buffer and an
entry is emitted as soon as its closing tag arrives.
"""

import codecs
import logging
import re

from sitemap_request_list.models.sitemap import SitemapItem, SitemapItemKind
from sitemap_request_list.utils.url import is_http_url

logger = logging.getLogger(__name__)

# root element -> (entry element, kind of item it produces)
ROOT_ENTRIES = {
    "urlset": ("url", SitemapItemKind.PAGE),
    "sitemapindex": ("sitemap", SitemapItemKind.NESTED_SITEMAP),
}

ENTRY_FIELDS = ("loc", "lastmod", "changefreq", "priority")

XML_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}

_ENTITY_RE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")
_TAG_NAME_RE = re.compile(r"[^\s/>]+")

# Markup whose terminator is not a plain ">"
_DELIMITED_MARKUP = (
    ("<!--", "-->"),
    ("<![CDATA[", "]]>"),
    ("<?", "?>"),
)

# Depth of elements inside the document (root = 1)
_ENTRY_DEPTH = 2
_FIELD_DEPTH = 3


def decode_entities(text: str) -> str:
    """Decode the predefined XML entities and numeric character references."""

    def _replace(match: re.Match) -> str:
        ref = match.group(1)
        if ref.startswith("#"):
            try:
                if ref[1] in "xX":
                    return chr(int(ref[2:], 16))
                return chr(int(ref[1:]))
            except (ValueError, OverflowError):
                return match.group(0)
        return XML_ENTITIES.get(ref, match.group(0))

    return _ENTITY_RE.sub(_replace, text)


def _local_name(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def _find_tag_end(buf: str, start: int) -> int:
    """Index just past the ">" closing a tag, honoring quoted attributes."""
    quote = None
    for i in range(start + 1, len(buf)):
        ch = buf[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif ch == ">":
            return i + 1
    return -1


def _find_doctype_end(buf: str, start: int) -> int:
    gt = buf.find(">", start)
    bracket = buf.find("[", start)
    if bracket == -1 or (gt != -1 and gt < bracket):
        return gt + 1 if gt != -1 else -1
    close = buf.find("]", bracket)
    if close == -1:
        return -1
    gt = buf.find(">", close)
    return gt + 1 if gt != -1 else -1


def _find_markup_end(buf: str, start: int) -> int:
    """
    Find where the markup token starting at buf[start] ("<") ends.

    Returns:
        Index just past the token, or -1 if more input is needed
    """
    head = buf[start : start + 9]
    for opener, closer in _DELIMITED_MARKUP:
        if head.startswith(opener):
            end = buf.find(closer, start + len(opener))
            return end + len(closer) if end != -1 else -1
        if opener.startswith(head):
            # Too short to tell which kind of markup this is
            return -1
    if head.startswith("<!"):
        return _find_doctype_end(buf, start)
    return _find_tag_end(buf, start)


class SitemapParser:
    """
    Incremental sitemap parser for a single source.

    Feed chunks with feed(); each call returns the items completed by that
    chunk in document order. Call close() once the source ends.
    """

    def __init__(self, source_url: str | None = None):
        self.source_url = source_url
        self.warnings: list[str] = []
        self.exhausted = False

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pos = 0
        self._format: str | None = None  # "xml" or "text"

        self._root: str | None = None
        self._stack: list[str] = []
        self._entry: dict[str, str] | None = None
        self._entry_broken = False
        self._field: str | None = None
        self._text_parts: list[tuple[str, bool]] = []

    @property
    def root(self) -> str | None:
        """Local name of the document root element, once seen."""
        return self._root

    def feed(self, chunk: bytes | str) -> list[SitemapItem]:
        if self.exhausted:
            raise RuntimeError("Cannot feed a sitemap parser after close()")
        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        return self._consume(text, final=False)

    def close(self) -> list[SitemapItem]:
        """Signal end of source and return any items completed by it."""
        if self.exhausted:
            return []
        items = self._consume(self._decoder.decode(b"", final=True), final=True)
        self.exhausted = True

        if self._format == "xml":
            if self._pos < len(self._buffer):
                self._warn("Source ended inside unterminated markup")
            if self._entry is not None:
                self._warn("Source ended inside an unclosed entry, skipped")
                self._entry = None
        self._buffer = ""
        self._pos = 0
        return items

    def _consume(self, text: str, final: bool) -> list[SitemapItem]:
        self._buffer = self._buffer[self._pos :] + text
        self._pos = 0

        if self._format is None:
            stripped = self._buffer.lstrip("\ufeff \t\r\n")
            if not stripped:
                self._pos = len(self._buffer)
                return []
            self._pos = len(self._buffer) - len(stripped)
            self._format = "xml" if stripped.startswith("<") else "text"

        items: list[SitemapItem] = []
        if self._format == "xml":
            self._scan_xml(items)
        else:
            self._scan_text(items, final)
        return items

    # --- Plain-text sitemaps ---

    def _scan_text(self, items: list[SitemapItem], final: bool) -> None:
        buf = self._buffer
        while True:
            newline = buf.find("\n", self._pos)
            if newline == -1:
                break
            self._text_line(buf[self._pos : newline], items)
            self._pos = newline + 1

        if final and self._pos < len(buf):
            self._text_line(buf[self._pos :], items)
            self._pos = len(buf)

    def _text_line(self, line: str, items: list[SitemapItem]) -> None:
        url = line.strip()
        if not url:
            return
        if not is_http_url(url):
            self._warn(f"Skipping invalid URL line: {url[:200]!r}")
            return
        items.append(SitemapItem(kind=SitemapItemKind.PAGE, loc=url))

    # --- XML sitemaps ---

    def _scan_xml(self, items: list[SitemapItem]) -> None:
        buf = self._buffer
        while self._pos < len(buf):
            lt = buf.find("<", self._pos)
            if lt == -1:
                self._handle_text(buf[self._pos :])
                self._pos = len(buf)
                break
            if lt > self._pos:
                self._handle_text(buf[self._pos : lt])
                self._pos = lt

            end = _find_markup_end(buf, lt)
            if end == -1:
                break
            self._handle_markup(buf[lt:end], items)
            self._pos = end

    def _handle_text(self, text: str, cdata: bool = False) -> None:
        if self._field is None:
            return
        # Entity references may be split between chunks, so adjacent plain
        # text is joined before decoding
        if not cdata and self._text_parts and not self._text_parts[-1][1]:
            self._text_parts[-1] = (self._text_parts[-1][0] + text, False)
        else:
            self._text_parts.append((text, cdata))

    def _handle_markup(self, token: str, items: list[SitemapItem]) -> None:
        if token.startswith("<![CDATA["):
            self._handle_text(token[9:-3], cdata=True)
            return
        if token.startswith(("<!", "<?")):
            return

        closing = token.startswith("</")
        inner = token[2:-1] if closing else token[1:-1]
        self_closing = not closing and inner.endswith("/")
        match = _TAG_NAME_RE.match(inner.strip())
        if match is None:
            self._warn(f"Ignoring malformed tag: {token[:200]!r}")
            return

        name = _local_name(match.group(0))
        if closing:
            self._end_element(name, items)
        else:
            self._start_element(name)
            if self_closing:
                self._end_element(name, items)

    def _start_element(self, name: str) -> None:
        depth = len(self._stack) + 1
        self._stack.append(name)

        if depth == 1:
            self._root = name
            if name not in ROOT_ENTRIES:
                self._warn(f"Unknown sitemap root element <{name}>, no entries read")
            return

        entry_tag = ROOT_ENTRIES.get(self._root or "", (None, None))[0]
        if depth == _ENTRY_DEPTH and name == entry_tag:
            self._entry = {}
            self._entry_broken = False
        elif (
            depth == _FIELD_DEPTH and self._entry is not None and name in ENTRY_FIELDS
        ):
            self._field = name
            self._text_parts = []

    def _end_element(self, name: str, items: list[SitemapItem]) -> None:
        if name not in self._stack:
            self._warn(f"Ignoring unexpected closing tag </{name}>")
            return

        while self._stack:
            depth = len(self._stack)
            open_name = self._stack.pop()
            matched = open_name == name
            self._close_element(open_name, depth, clean=matched, items=items)
            if matched:
                break

    def _close_element(
        self, name: str, depth: int, clean: bool, items: list[SitemapItem]
    ) -> None:
        if depth == _FIELD_DEPTH and self._field == name:
            if clean and self._entry is not None:
                text = "".join(
                    part if cdata else decode_entities(part)
                    for part, cdata in self._text_parts
                )
                self._entry[name] = text.strip()
            else:
                self._entry_broken = True
            self._field = None
            self._text_parts = []
            return

        if depth == _ENTRY_DEPTH and self._entry is not None:
            entry, broken = self._entry, self._entry_broken or not clean
            self._entry = None
            self._field = None
            item = self._build_item(entry, broken)
            if item is not None:
                items.append(item)

    def _build_item(self, entry: dict[str, str], broken: bool) -> SitemapItem | None:
        loc = entry.get("loc")
        if broken:
            self._warn(f"Skipping malformed entry (loc={loc!r})")
            return None
        if not loc:
            self._warn("Skipping entry without <loc>")
            return None
        if not is_http_url(loc):
            self._warn(f"Skipping entry with invalid <loc>: {loc[:200]!r}")
            return None

        kind = ROOT_ENTRIES[self._root][1]
        metadata = {k: v for k, v in entry.items() if k != "loc" and v}
        return SitemapItem(kind=kind, loc=loc, metadata=metadata)

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(f"Sitemap {self.source_url or '<unknown>'}: {message}")
