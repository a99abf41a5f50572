"""
Markup parser adapter.

ParsedDocument wraps one parsed HTML document behind a small read-only
capability interface: select nodes by CSS selector, read attributes and text,
walk ancestors and siblings. The Extractor and HeuristicAnalyzer only talk to
this interface, never to BeautifulSoup directly.

Parsing never fails on bad HTML:
  - string-level sanitization first (NULL bytes, control characters, line endings)
  - parser fallback chain html5lib -> lxml -> html.parser
  - script/style/noscript/template bodies and comments are dropped, so every
    text read sees only visible text
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment, Tag

from .logger import get_module_logger

logger = get_module_logger("document")

# Elements whose content is never visible text
INVISIBLE_ELEMENTS = ['script', 'style', 'noscript', 'template']

# Browsers silently remap these charset labels (WHATWG Encoding Standard).
# https://encoding.spec.whatwg.org/#names-and-labels
WHATWG_CHARSET_MAP = {
    'iso-8859-1': 'windows-1252',
    'iso8859-1': 'windows-1252',
    'iso88591': 'windows-1252',
    'latin-1': 'windows-1252',
    'latin1': 'windows-1252',
    'us-ascii': 'windows-1252',
    'ascii': 'windows-1252',
    'iso-8859-9': 'windows-1254',
    'iso-8859-11': 'windows-874',
}

CONTROL_CHARS = ''.join(chr(c) for c in range(32) if c not in (9, 10, 13))

# Leading integer of an attribute value, e.g. "800px" -> 800
LEADING_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')


def detect_charset_from_bytes(raw_bytes: bytes) -> str:
    """
    Detect charset from raw HTML bytes by scanning the first 2048 bytes for
    <meta charset=...> or <meta http-equiv="Content-Type" content="...; charset=...">.

    Returns the browser-equivalent charset, or 'utf-8' when none is declared.
    """
    head_str = raw_bytes[:2048].decode('ascii', errors='ignore')

    charset = None

    m = re.search(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', head_str, re.IGNORECASE)
    if m:
        charset = m.group(1).strip().lower()

    if not charset:
        m = re.search(
            r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)',
            head_str, re.IGNORECASE
        )
        if m:
            charset = m.group(1).strip().lower()

    if not charset:
        return 'utf-8'

    return WHATWG_CHARSET_MAP.get(charset, charset)


def decode_markup(raw_bytes: bytes) -> str:
    """Decode raw HTML bytes using the charset the page declares."""
    charset = detect_charset_from_bytes(raw_bytes)
    try:
        return raw_bytes.decode(charset, errors='replace')
    except LookupError:
        logger.warning(f"Unknown charset '{charset}', decoding as utf-8")
        return raw_bytes.decode('utf-8', errors='replace')


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parse the leading integer of an attribute value.

    Returns None for missing, non-numeric and zero values.
    """
    if not value:
        return None
    m = LEADING_INT_PATTERN.match(value)
    if not m:
        return None
    return int(m.group(1)) or None


def parse_style(style: str) -> dict[str, str]:
    """Parse an inline style attribute into a property -> value mapping."""
    declarations = {}
    for part in style.split(';'):
        if ':' not in part:
            continue
        prop, _, value = part.partition(':')
        prop = prop.strip().lower()
        value = value.strip()
        if prop and value:
            declarations[prop] = value
    return declarations


class Node:
    """Read-only view of one element in a ParsedDocument."""

    __slots__ = ('_tag',)

    def __init__(self, tag: Tag):
        self._tag = tag

    def __eq__(self, other) -> bool:
        return isinstance(other, Node) and other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        return f"Node(<{self.name}>)"

    @property
    def name(self) -> str:
        return self._tag.name

    def get(self, attr: str, default: str = "") -> str:
        """Attribute value as a string; multi-valued attributes are space-joined."""
        value = self._tag.get(attr)
        if value is None:
            return default
        if isinstance(value, list):
            return ' '.join(value)
        return value

    def has_attr(self, attr: str) -> bool:
        return self._tag.has_attr(attr)

    @property
    def classes(self) -> list[str]:
        value = self._tag.get('class') or []
        return value.split() if isinstance(value, str) else list(value)

    def has_class(self, name: str) -> bool:
        return name in self.classes

    @property
    def text(self) -> str:
        """All descendant text, trimmed."""
        return self._tag.get_text().strip()

    @property
    def own_text(self) -> str:
        """Text of direct text children only (child elements ignored), trimmed."""
        return ''.join(
            str(child) for child in self._tag.children
            if isinstance(child, str) and not isinstance(child, Comment)
        ).strip()

    def style(self, prop: str) -> Optional[str]:
        """Value of one inline style property, or None when not set."""
        return parse_style(self.get('style')).get(prop.lower())

    def int_attr(self, attr: str) -> Optional[int]:
        return parse_int(self.get(attr))

    @property
    def parent(self) -> Optional["Node"]:
        parent = self._tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return Node(parent)

    def ancestors(self) -> list["Node"]:
        """Ancestor elements, nearest first, excluding the document itself."""
        return [
            Node(p) for p in self._tag.parents
            if not isinstance(p, BeautifulSoup)
        ]

    def matches(self, selector: str) -> bool:
        return bool(self._tag.css.match(selector))

    def has_ancestor(self, selector: str) -> bool:
        return any(a.matches(selector) for a in self.ancestors())

    def closest(self, selector: str) -> Optional["Node"]:
        """This node or its nearest ancestor matching the selector."""
        if self.matches(selector):
            return self
        for ancestor in self.ancestors():
            if ancestor.matches(selector):
                return ancestor
        return None

    def select(self, selector: str) -> list["Node"]:
        return [Node(t) for t in self._tag.select(selector)]

    def children(self, name: Optional[str] = None) -> list["Node"]:
        """Direct child elements, optionally filtered by tag name."""
        return [
            Node(c) for c in self._tag.children
            if isinstance(c, Tag) and (name is None or c.name == name)
        ]

    @property
    def previous_element(self) -> Optional["Node"]:
        """Previous sibling element, skipping text nodes."""
        sibling = self._tag.previous_sibling
        while sibling is not None and not isinstance(sibling, Tag):
            sibling = sibling.previous_sibling
        return Node(sibling) if sibling is not None else None

    @property
    def next_element(self) -> Optional["Node"]:
        """Next sibling element, skipping text nodes."""
        sibling = self._tag.next_sibling
        while sibling is not None and not isinstance(sibling, Tag):
            sibling = sibling.next_sibling
        return Node(sibling) if sibling is not None else None


class ParsedDocument:
    """
    Immutable view of one HTML document.

    Owned by the pipeline invocation that created it and discarded after
    extraction and analysis complete.
    """

    def __init__(self, markup: str):
        self.warnings: list[str] = []
        sanitized = self._sanitize(markup or "")
        self._soup = self._parse(sanitized)
        self._strip_invisible()

    def _sanitize(self, markup: str) -> str:
        """String-level fixes that keep parsers from choking."""
        sanitized = markup.encode('utf-8', errors='replace').decode('utf-8')

        if '\x00' in sanitized:
            sanitized = sanitized.replace('\x00', '')
            self.warnings.append("Removed NULL bytes")

        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        if any(c in sanitized for c in CONTROL_CHARS):
            sanitized = sanitized.translate(str.maketrans('', '', CONTROL_CHARS))
            self.warnings.append("Removed control characters")

        return sanitized

    def _parse(self, markup: str) -> BeautifulSoup:
        """Parser fallback chain: html5lib -> lxml -> html.parser."""
        try:
            return BeautifulSoup(markup, 'html5lib')
        except Exception as e:
            logger.warning(f"html5lib parsing failed, trying lxml: {e}")
            self.warnings.append(f"html5lib parsing failed: {e}")

        try:
            return BeautifulSoup(markup, 'lxml')
        except Exception as e:
            logger.warning(f"lxml parsing also failed: {e}")
            self.warnings.append(f"lxml parsing failed: {e}")

        return BeautifulSoup(markup, 'html.parser')

    def _strip_invisible(self) -> None:
        for comment in self._soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for tag in self._soup.find_all(INVISIBLE_ELEMENTS):
            tag.decompose()

    # --- Selection ---

    def select(self, selector: str) -> list[Node]:
        """All elements matching a CSS selector, in document order."""
        return [Node(t) for t in self._soup.select(selector)]

    def select_one(self, selector: str) -> Optional[Node]:
        tag = self._soup.select_one(selector)
        return Node(tag) if tag is not None else None

    def exists(self, selector: str) -> bool:
        return self._soup.select_one(selector) is not None

    def count(self, selector: str) -> int:
        return len(self._soup.select(selector))

    # --- Text and attributes ---

    def text(self, selector: str) -> str:
        """Concatenated text of every match, trimmed."""
        return ''.join(t.get_text() for t in self._soup.select(selector)).strip()

    def attr(self, selector: str, name: str) -> Optional[str]:
        """Attribute of the first match, or None when absent."""
        node = self.select_one(selector)
        if node is None or not node.has_attr(name):
            return None
        return node.get(name)

    def title_text(self) -> str:
        return self.text('title')

    @property
    def body(self) -> Optional[Node]:
        return self.select_one('body')

    def body_text(self) -> str:
        """Visible body text, untrimmed (whole document when there is no body)."""
        body = self._soup.find('body')
        return (body or self._soup).get_text()


def parse_document(markup: str) -> ParsedDocument:
    """Convenience function to parse markup."""
    return ParsedDocument(markup)
