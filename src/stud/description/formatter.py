"""Split issue descriptions into titled sections and render them to a console.

A description is cut into segments on divider lines (``---``). Each segment
gets a title from its first line when that line is a recognised header, or a
fallback title otherwise. Section content is rendered as interleaved prose
paragraphs and checkbox lists.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Protocol, Sequence

from stud.config import DEFAULT_SECTION_KEYWORDS

DIVIDER = "---"
DEFAULT_FALLBACK_TITLE = "Details"
SUB_ITEM_SEPARATOR = "\n  - "


class DescriptionSink(Protocol):
    """Console operations the renderer drives."""

    def section(self, title: str) -> None: ...

    def text(self, lines: list[str]) -> None: ...

    def listing(self, items: list[str]) -> None: ...


@dataclass(frozen=True)
class Section:
    """A titled run of description lines."""

    title: str
    content_lines: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SegmentParse:
    """Result of extracting the title from one segment."""

    title_found: bool
    title: str
    content_lines: list[str]


class BlockKind(str, Enum):
    """Kinds of rendered content blocks."""

    TEXT = "text"
    LIST = "list"


@dataclass(frozen=True)
class Block:
    """One ``text`` or ``listing`` emission."""

    kind: BlockKind
    lines: list[str]


def is_blank(line: str) -> bool:
    return not line.strip()


def sanitize_content(lines: Iterable[str]) -> list[str]:
    """Collapse runs of blank lines into a single blank line."""
    sanitized: list[str] = []
    prev_blank = False
    for line in lines:
        blank = is_blank(line)
        if blank and prev_blank:
            continue
        sanitized.append(line)
        prev_blank = blank
    return sanitized


def split_segments(raw: str) -> list[list[str]]:
    """Split a description into segments on ``---`` divider lines.

    Segments holding only blank lines are dropped. When nothing survives (the
    description is made of dividers and blank lines), the trailing segment is
    kept so the description still yields one section.
    """
    if not raw.strip():
        return []

    segments: list[list[str]] = []
    current: list[str] = []
    for line in raw.split("\n"):
        if line.strip() == DIVIDER:
            if not all(is_blank(buffered) for buffered in current):
                segments.append(current)
            current = []
        else:
            current.append(line)

    if not all(is_blank(buffered) for buffered in current):
        segments.append(current)
    elif not segments:
        segments.append(current)

    return segments


class HeaderMatcher:
    """Recognises header lines and extracts their title.

    Predicates are tried in order against a trimmed line:

    1. ``Label:`` - title is the label without the colon
    2. a configured keyword on its own, e.g. ``User Story``
    3. ``Keyword: value`` - title is the whole line
    """

    def __init__(self, keywords: Sequence[str] = DEFAULT_SECTION_KEYWORDS):
        self.keywords = frozenset(keyword.strip() for keyword in keywords if keyword.strip())
        self._predicates: list[Callable[[str], str | None]] = [
            self._ends_with_colon,
            self._keyword,
            self._keyword_with_value,
        ]

    def match(self, line: str) -> str | None:
        """Return the header title for ``line``, or None if it is not a header."""
        trimmed = line.strip()
        if not trimmed:
            return None
        for predicate in self._predicates:
            title = predicate(trimmed)
            if title:
                return title
        return None

    def _ends_with_colon(self, line: str) -> str | None:
        if line.endswith(":"):
            return line[:-1].strip() or None
        return None

    def _keyword(self, line: str) -> str | None:
        return line if line in self.keywords else None

    def _keyword_with_value(self, line: str) -> str | None:
        label, colon, value = line.partition(":")
        if colon and value.strip() and label.strip() in self.keywords:
            return line
        return None


class DescriptionFormatter:
    """Parse descriptions into sections and render them through a sink."""

    CHECKBOX_PATTERN = re.compile(r"^\[\s*[xX]?\s*\]\s*(.+)$")

    def __init__(
        self,
        keywords: Sequence[str] = DEFAULT_SECTION_KEYWORDS,
        fallback_title: str = DEFAULT_FALLBACK_TITLE,
    ):
        self.headers = HeaderMatcher(keywords)
        self.fallback_title = fallback_title

    # Parsing

    def parse_segment(self, lines: Sequence[str]) -> SegmentParse:
        """Extract the title of one segment.

        The header line is dropped from the content; everything after it,
        including the blank line that usually follows, is kept verbatim.
        """
        first = next((i for i, line in enumerate(lines) if not is_blank(line)), None)
        if first is not None:
            title = self.headers.match(lines[first])
            if title is not None:
                return SegmentParse(True, title, list(lines[first + 1 :]))
        return SegmentParse(False, self.fallback_title, list(lines))

    def format(self, raw: str) -> list[Section]:
        """Parse ``raw`` into sections."""
        sections = []
        for segment in split_segments(raw):
            parsed = self.parse_segment(segment)
            sections.append(Section(title=parsed.title, content_lines=parsed.content_lines))
        return sections

    # Rendering

    def checkbox_text(self, line: str) -> str | None:
        """Return the item text of a checkbox line, or None."""
        match = self.CHECKBOX_PATTERN.match(line.strip())
        if match:
            return match.group(1).strip()
        return None

    def build_blocks(self, lines: Sequence[str]) -> list[Block]:
        """Group sanitized content lines into paragraph and list blocks."""
        return _BlockBuilder(self.checkbox_text).run(lines)

    def render_content(self, sink: DescriptionSink, lines: Sequence[str]) -> None:
        """Emit the blocks of one section's content."""
        for block in self.build_blocks(sanitize_content(lines)):
            if block.kind == BlockKind.LIST:
                sink.listing(block.lines)
            else:
                sink.text(block.lines)

    def display(self, sink: DescriptionSink, raw: str) -> None:
        """Render a whole description: one heading per section, then its content."""
        if not raw.strip():
            return
        for section in self.format(raw):
            sink.section(section.title)
            self.render_content(sink, section.content_lines)


class _BlockBuilder:
    """TEXT/LIST state machine over content lines.

    In TEXT mode plain lines accumulate into a paragraph. A checkbox switches
    to LIST mode; plain lines directly below an item become its sub-items. A
    blank line inside a list only survives if another checkbox follows,
    otherwise the list is flushed and the text starts a new paragraph.
    """

    def __init__(self, checkbox_text: Callable[[str], str | None]):
        self._checkbox_text = checkbox_text
        self.blocks: list[Block] = []
        self.mode = BlockKind.TEXT
        self.paragraph: list[str] = []
        self.items: list[str] = []
        self.item: str | None = None
        self.sub_items: list[str] = []
        self.gap = False

    def run(self, lines: Sequence[str]) -> list[Block]:
        for line in lines:
            item_text = self._checkbox_text(line)
            if item_text is not None:
                self.on_checkbox(item_text)
            elif is_blank(line):
                self.on_blank()
            else:
                self.on_text(line.strip())
        self.flush_list()
        self.flush_paragraph()
        return self.blocks

    def on_checkbox(self, item_text: str) -> None:
        self.flush_paragraph()
        self.close_item()
        self.mode = BlockKind.LIST
        self.item = item_text
        self.gap = False

    def on_blank(self) -> None:
        if self.mode == BlockKind.LIST:
            self.gap = True
        elif self.paragraph:
            self.paragraph.append("")

    def on_text(self, text: str) -> None:
        if self.mode == BlockKind.LIST and not self.gap:
            self.sub_items.append(text)
            return
        if self.mode == BlockKind.LIST:
            self.flush_list()
        self.paragraph.append(text)

    def close_item(self) -> None:
        if self.item is None:
            return
        self.items.append(self.item + "".join(SUB_ITEM_SEPARATOR + sub for sub in self.sub_items))
        self.item = None
        self.sub_items = []

    def flush_list(self) -> None:
        self.close_item()
        if self.items:
            self.blocks.append(Block(BlockKind.LIST, self.items))
        self.items = []
        self.mode = BlockKind.TEXT
        self.gap = False

    def flush_paragraph(self) -> None:
        while self.paragraph and self.paragraph[-1] == "":
            self.paragraph.pop()
        if self.paragraph:
            self.blocks.append(Block(BlockKind.TEXT, self.paragraph))
        self.paragraph = []


_default_formatter = DescriptionFormatter()


def format_description(raw: str) -> list[Section]:
    """Parse a description into sections with the default header keywords."""
    return _default_formatter.format(raw)


def display_description(sink: DescriptionSink, raw: str) -> None:
    """Render a description to ``sink`` with the default header keywords."""
    _default_formatter.display(sink, raw)
