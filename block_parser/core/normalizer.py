"""Raw block normalization, legacy conversion, and missing-type wrapping.

WHY: Raw blocks straight from the tokenizer have gaps: freeform spans
have no name, malformed delimiters have no attrs, and inner HTML carries
surrounding whitespace. Some names are legacy aliases and some are not
registered at all. Everything after this module assumes a resolved,
well-formed raw block.

HOW: normalize_raw_block() fills defaults and upgrades freeform content,
resolve_legacy_block() applies the context's rename table, and
create_missing_block_type() re-wraps a block whose type is unknown under
the unregistered-type handler, storing its source text as attributes.

RULES:
- Absent name → freeform handler name; absent attrs → {}
- inner_html is trimmed; freeform content also gets the html_upgrade pass
- The missing-type wrapper stores originalName, originalContent
  (with delimiters) and originalUndelimitedContent
- The wrapper's inner_html is originalContent when the block had a name,
  otherwise the raw inner_html
- All functions return new RawBlock objects; inputs are never mutated
"""

from __future__ import annotations

import logging
from dataclasses import replace

from block_parser.core.context import ParseContext
from block_parser.core.ir import RawBlock
from block_parser.core.legacy import convert_legacy_block

logger = logging.getLogger(__name__)


def normalize_raw_block(raw_block: RawBlock, context: ParseContext) -> RawBlock:
    """Fill defaults and upgrade freeform content.

    RULES:
    - The freeform upgrade runs only when the resolved name is the freeform
      handler, and relies on html_upgrade being idempotent
    """
    name = raw_block.name or context.freeform_handler_name
    inner_html = raw_block.inner_html.strip()

    # Classic content expects implicit paragraphs; upgrade it every time.
    if name is not None and name == context.freeform_handler_name:
        inner_html = context.html_upgrade(inner_html).strip()

    return replace(
        raw_block,
        name=name,
        attrs=raw_block.attrs or {},
        inner_html=inner_html,
        inner_blocks=list(raw_block.inner_blocks or []),
    )


def resolve_legacy_block(raw_block: RawBlock, context: ParseContext) -> RawBlock:
    """Apply the context's legacy rename table to a normalized block."""
    if raw_block.name is None:
        return raw_block
    original_attrs = raw_block.attrs if raw_block.attrs is not None else {}
    name, attrs = convert_legacy_block(raw_block.name, original_attrs, context.legacy_rules)
    if name == raw_block.name and attrs is original_attrs:
        return raw_block
    logger.debug("Converted legacy block %s to %s", raw_block.name, name)
    return replace(raw_block, name=name, attrs=attrs)


def create_missing_block_type(raw_block: RawBlock, context: ParseContext) -> RawBlock:
    """Wrap a block of unknown type in the unregistered-type handler.

    WHY: A block whose type is not registered cannot be interpreted, but
    its content belongs to the user. The wrapper keeps enough to write it
    back unchanged: the original name and the original source text with
    and without delimiters.

    HOW: Serializes the raw block twice through the context's raw
    serializer and builds a new raw block named after the unregistered
    handler (or the freeform handler when none is configured).

    Returns:
        A new raw block; inner_blocks and inner_content are carried over.
    """
    fallback_name = context.unregistered_handler_name or context.freeform_handler_name

    # inner_html alone would lose nested blocks; serialize the whole subtree.
    original_undelimited_content = context.raw_serializer(raw_block, delimited=False)
    original_content = context.raw_serializer(raw_block, delimited=True)

    logger.debug(
        "Block type %s is not registered; wrapping as %s", raw_block.name, fallback_name
    )
    return RawBlock(
        name=fallback_name,
        attrs={
            "originalName": raw_block.name,
            "originalContent": original_content,
            "originalUndelimitedContent": original_undelimited_content,
        },
        inner_html=original_content if raw_block.name else raw_block.inner_html,
        inner_content=list(raw_block.inner_content),
        inner_blocks=list(raw_block.inner_blocks),
        delimiters=raw_block.delimiters,
    )
