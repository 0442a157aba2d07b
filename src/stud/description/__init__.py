"""Issue description parsing and console rendering."""

from stud.description.formatter import (
    Block,
    BlockKind,
    DescriptionFormatter,
    DescriptionSink,
    HeaderMatcher,
    Section,
    SegmentParse,
    display_description,
    format_description,
    sanitize_content,
    split_segments,
)

__all__ = [
    "Block",
    "BlockKind",
    "DescriptionFormatter",
    "DescriptionSink",
    "HeaderMatcher",
    "Section",
    "SegmentParse",
    "display_description",
    "format_description",
    "sanitize_content",
    "split_segments",
]
