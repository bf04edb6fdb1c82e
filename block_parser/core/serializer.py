"""Raw block re-serialization.

WHY: When a block's type is unknown the parser cannot interpret its
content, but it must not lose it either. The unregistered-type handler
stores the block's source text so a host can write it back unchanged.
This module rebuilds that text from a raw block.

HOW: Inner content fragments are joined with nested blocks serialized
recursively in their placeholder positions. When the tokenizer recorded
the block's delimiters, they are reused verbatim, so a tokenized block
serializes to exactly the bytes it was read from. Blocks built in code
get canonical delimiters instead.

RULES:
- delimited=False drops delimiters at every nesting level
- Tokenized blocks round-trip byte for byte
- Canonical delimiters drop the "core/" namespace and escape the JSON so
  it can never terminate the comment early
- Freeform blocks (name=None) never get delimiters
- A block with no inner_content and no inner blocks serializes its
  inner_html
"""

from __future__ import annotations

import json
import re
from typing import Any

from block_parser.core.ir import RawBlock

_NEWLINES_RE = re.compile(r"\n+")


def serialize_attributes(attributes: dict[str, Any]) -> str:
    """Encode block attributes as delimiter-safe JSON.

    RULES:
    - "--" is escaped so the comment cannot close early
    - "<", ">" and "&" are escaped so HTML tools leave the comment alone
    - Escaped quotes inside strings become \\u0022
    """
    return (
        json.dumps(attributes, ensure_ascii=False, separators=(",", ":"))
        .replace("--", "\\u002d\\u002d")
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace('\\"', "\\u0022")
    )


def get_comment_delimited_content(
    name: str | None,
    attributes: dict[str, Any] | None,
    content: str,
) -> str:
    """Wrap content in canonical block delimiters.

    RULES:
    - "core/" names are written without their namespace
    - Empty content produces a void delimiter
    """
    serialized = serialize_attributes(attributes) + " " if attributes else ""
    short_name = name[len("core/"):] if name and name.startswith("core/") else name
    if not content:
        return f"<!-- wp:{short_name} {serialized}/-->"
    return (
        f"<!-- wp:{short_name} {serialized}-->\n"
        f"{content}\n"
        f"<!-- /wp:{short_name} -->"
    )


def serialize_raw_block(raw_block: RawBlock, delimited: bool = True) -> str:
    """Rebuild the source text of a raw block.

    Args:
        raw_block: The raw block to serialize, nested blocks included.
        delimited: Whether to include the block comment delimiters.

    Returns:
        The block's text. For tokenized blocks serialized with delimiters
        this is exactly the original source span.
    """
    fragments = raw_block.inner_content
    if not fragments and not raw_block.inner_blocks and raw_block.inner_html:
        fragments = [raw_block.inner_html]

    children = iter(raw_block.inner_blocks)
    pieces = [
        fragment if fragment is not None else serialize_raw_block(next(children), delimited)
        for fragment in fragments
    ]

    if raw_block.delimiters is not None:
        content = "".join(pieces)
        if not delimited:
            return content
        opener, closer = raw_block.delimiters
        return opener + content + closer

    content = _NEWLINES_RE.sub("\n", "\n".join(pieces)).strip()
    if not delimited or raw_block.name is None:
        return content
    return get_comment_delimited_content(raw_block.name, raw_block.attrs, content)
