"""Convert Atlassian Document Format (ADF) to plain description text.

The output is the line-oriented text the description formatter reads:
blocks separated by blank lines, ``rule`` nodes as ``---`` dividers and task
items as ``[ ]`` / ``[x]`` checkbox lines.
"""

from typing import Any

DIVIDER = "---"


def adf_to_text(adf: dict[str, Any] | list[Any] | str | None) -> str:
    """Convert an ADF document (or node list) to plain text.

    Accepts either a full ADF doc ``{"type": "doc", "content": [...]}``,
    a plain list of ADF nodes, or a string which is returned unchanged.
    """
    if not adf:
        return ""
    if isinstance(adf, str):
        return adf
    nodes = adf if isinstance(adf, list) else adf.get("content", [])
    return _join_blocks(nodes, "\n\n")


def _join_blocks(nodes: list[Any], separator: str) -> str:
    blocks = [_block(node) for node in nodes if isinstance(node, dict)]
    return separator.join(block for block in blocks if block)


def _block(node: dict[str, Any], depth: int = 0) -> str:
    node_type = node.get("type")
    children = node.get("content", [])

    if node_type in ("paragraph", "heading", "codeBlock"):
        return _inline(children)
    if node_type == "rule":
        return DIVIDER
    if node_type == "bulletList":
        return _list_items(children, depth, ordered=False)
    if node_type == "orderedList":
        return _list_items(children, depth, ordered=True)
    if node_type == "taskList":
        return _task_items(children, depth)
    if node_type == "table":
        return "\n".join(_table_row(row) for row in children if isinstance(row, dict))
    if node_type in ("text", "hardBreak", "mention", "emoji", "inlineCard", "status", "date"):
        return _inline([node])
    return _join_blocks(children, "\n")


def _list_items(items: list[Any], depth: int, ordered: bool) -> str:
    indent = "  " * depth
    lines = []
    for number, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            continue
        marker = f"{number}." if ordered else "-"
        text_parts = []
        nested = []
        for child in item.get("content", []):
            if child.get("type") in ("bulletList", "orderedList", "taskList"):
                nested.append(_block(child, depth + 1))
            else:
                text_parts.append(_block(child, depth))
        lines.append(f"{indent}{marker} {' '.join(part for part in text_parts if part)}")
        lines.extend(block for block in nested if block)
    return "\n".join(lines)


def _task_items(items: list[Any], depth: int) -> str:
    indent = "  " * depth
    lines = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "taskList":
            lines.append(_task_items(item.get("content", []), depth + 1))
            continue
        box = "[x]" if item.get("attrs", {}).get("state") == "DONE" else "[ ]"
        lines.append(f"{indent}{box} {_inline(item.get('content', []))}")
    return "\n".join(line for line in lines if line)


def _table_row(row: dict[str, Any]) -> str:
    cells = [_join_blocks(cell.get("content", []), " ") for cell in row.get("content", [])]
    return " | ".join(cells)


def _inline(nodes: list[Any]) -> str:
    parts = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        attrs = node.get("attrs", {})
        if node_type == "text":
            parts.append(node.get("text", ""))
        elif node_type == "hardBreak":
            parts.append("\n")
        elif node_type == "mention":
            parts.append(attrs.get("text", ""))
        elif node_type == "emoji":
            parts.append(attrs.get("text") or attrs.get("shortName", ""))
        elif node_type == "inlineCard":
            parts.append(attrs.get("url", ""))
        elif node_type == "status":
            parts.append(f"[{attrs.get('text', '')}]")
        elif node_type == "date":
            parts.append(str(attrs.get("timestamp", "")))
        else:
            parts.append(_inline(node.get("content", [])))
    return "".join(parts)
