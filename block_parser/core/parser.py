"""Document parsing: raw blocks → validated block tree.

WHY: This is the single public entry point hosts call. It wires the
pipeline stages together in the one order that is correct: children are
finished before their parent, because the parent's validation and
migration see its final inner blocks.

HOW: parse_document() tokenizes, checks nesting depth, and parses each
top-level raw block. parse_raw_block() runs one block through:
  normalize → legacy rename → lookup (or wrap as missing type) →
  parse children → extract attributes → validate → (fix → validate) →
  deprecated-version migration

RULES:
- Children that parse to None are omitted; order is otherwise preserved
- Empty fallback blocks (freeform or unregistered handler, no inner HTML)
  are dropped, as are blocks left with no block type after wrapping
- A block wrapped as a missing type records the name it was written
  with, not its legacy rename
- Invalid blocks are kept with is_valid=False and their issues
- Migration runs even for valid blocks
- Nesting deeper than context.max_depth raises NestingTooDeepError before
  any block is parsed
- The same document and context always produce an identical tree
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from block_parser.blocks import BlockTypeRegistry
from block_parser.core.attributes import get_block_attributes
from block_parser.core.context import ParseContext
from block_parser.core.deprecation import apply_block_deprecated_versions
from block_parser.core.fixes import apply_built_in_validation_fixes
from block_parser.core.ir import Block, RawBlock
from block_parser.core.normalizer import (
    create_missing_block_type,
    normalize_raw_block,
    resolve_legacy_block,
)
from block_parser.core.validation import validate_block

logger = logging.getLogger(__name__)


class NestingTooDeepError(ValueError):
    """Raised when a document nests blocks deeper than the context allows.

    WHY: Parsing recurses once per nesting level. Refusing pathological
    input up front is better than exhausting the interpreter stack midway.
    """

    def __init__(self, depth: int, max_depth: int) -> None:
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"Block nesting depth {depth} exceeds the limit of {max_depth}."
        )


def measure_nesting_depth(raw_blocks: Iterable[RawBlock]) -> int:
    """Return the deepest nesting level (top-level blocks are depth 1)."""
    deepest = 0
    stack = [(raw_block, 1) for raw_block in raw_blocks]
    while stack:
        raw_block, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in raw_block.inner_blocks or [])
    return deepest


def _check_depth(raw_blocks: list[RawBlock], context: ParseContext) -> None:
    depth = measure_nesting_depth(raw_blocks)
    if depth > context.max_depth:
        raise NestingTooDeepError(depth, context.max_depth)


def _parse_raw_block(raw_block: RawBlock, context: ParseContext) -> Block | None:
    source = normalize_raw_block(raw_block, context)

    # Renamed and reshaped blocks from earlier releases.
    normalized = resolve_legacy_block(source, context)

    block_type = context.lookup_block_type(normalized.name)
    if block_type is None:
        # Wrap the block as written so originalName matches its delimiters.
        normalized = create_missing_block_type(source, context)
        block_type = context.lookup_block_type(normalized.name)

    if block_type is None:
        if normalized.inner_html:
            logger.warning(
                "No handler registered for %s; block content dropped",
                normalized.attrs.get("originalName") if normalized.attrs else None,
            )
        return None

    if not normalized.inner_html and context.is_fallback_name(normalized.name):
        logger.debug("Dropped empty %s block", normalized.name)
        return None

    inner_blocks: list[Block] = []
    for child in normalized.inner_blocks:
        parsed = _parse_raw_block(child, context)
        if parsed is not None:
            inner_blocks.append(parsed)

    block = Block(
        name=normalized.name,
        attributes=get_block_attributes(
            block_type, normalized.inner_html, normalized.attrs, context.meta_lookup
        ),
        inner_blocks=inner_blocks,
        original_content=normalized.inner_html,
    )

    is_valid, issues = validate_block(block, block_type, context)
    if not is_valid:
        block = apply_built_in_validation_fixes(block, block_type)
        is_valid, issues = validate_block(block, block_type, context)
    block = replace(block, is_valid=is_valid, validation_issues=issues)

    return apply_block_deprecated_versions(block, normalized, block_type, context)


def parse_raw_block(raw_block: RawBlock, context: ParseContext) -> Block | None:
    """Parse one raw block (and its subtree) into a Block.

    Args:
        raw_block: A raw block as produced by the tokenizer.
        context: Registry, handler names and collaborators for this parse.

    Returns:
        The parsed block, or None when the block is dropped.

    Raises:
        NestingTooDeepError: If the subtree nests deeper than allowed.
    """
    _check_depth([raw_block], context)
    return _parse_raw_block(raw_block, context)


def parse_document(document: str, context: Optional[ParseContext] = None) -> list[Block]:
    """Parse a block document into a list of top-level blocks.

    WHY: Hosts have a document string and want a validated tree; this
    function hides tokenizing, normalization, and the recursion.

    Args:
        document: The full serialized document.
        context: Registry, handler names and collaborators for this parse.
            Defaults to the configured handlers over an empty registry.

    Returns:
        Top-level blocks in document order, dropped blocks omitted.

    Raises:
        NestingTooDeepError: If the document nests deeper than allowed.
    """
    if context is None:
        context = ParseContext.from_config(BlockTypeRegistry())

    raw_blocks = context.tokenizer(document)
    _check_depth(raw_blocks, context)

    blocks: list[Block] = []
    for raw_block in raw_blocks:
        block = _parse_raw_block(raw_block, context)
        if block is not None:
            blocks.append(block)

    logger.debug("Parsed %d top-level blocks from %d raw blocks", len(blocks), len(raw_blocks))
    return blocks


def log_validation_issues(blocks: Iterable[Block], logger: logging.Logger) -> int:
    """Emit the deferred issues of every invalid block in a tree.

    WHY: The parser never logs validation issues itself. Hosts that want
    them in their logs call this after parsing.

    Returns:
        The number of issues emitted.
    """
    emitted = 0
    stack = list(blocks)
    while stack:
        block = stack.pop()
        if not block.is_valid:
            for issue in block.validation_issues:
                issue.emit(logger)
                emitted += 1
        stack.extend(block.inner_blocks)
    return emitted
