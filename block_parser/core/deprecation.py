"""Deprecated block version matching and migration.

WHY: When a block type changes its markup or attribute shape, documents
saved with the old version stop validating against the new ``save``.
Each block type keeps its historical versions; content written by one of
them can be recognized and upgraded instead of being flagged invalid.

HOW: For each deprecated version, in registration order, attributes are
re-extracted from the original raw block using that version's own
definitions. The version matches when its is_eligible hook says so, or
when its save output validates against the stored markup (with the
built-in fixes, exactly like primary validation). The first match runs
its migrate hook and the result replaces the block's attributes, and
inner blocks when migrate returns a pair.

RULES:
- Runs for every block, valid or not: migrate hooks may rename or reshape
  attributes even when the markup is unchanged
- First match wins; later versions are not tried
- A version without migrate keeps its re-extracted attributes
- A version matched by validating its save makes the block valid with no
  issues; a version matched only by is_eligible keeps the earlier verdict
- No match leaves the block exactly as it was
"""

from __future__ import annotations

import logging
from dataclasses import replace

from block_parser.blocks.base import BlockType, DeprecatedBlockType
from block_parser.core.attributes import get_block_attributes
from block_parser.core.context import ParseContext
from block_parser.core.fixes import apply_built_in_validation_fixes
from block_parser.core.ir import Block, RawBlock
from block_parser.core.validation import validate_block

logger = logging.getLogger(__name__)


def _matches_deprecation(
    candidate: Block,
    deprecation: DeprecatedBlockType,
    deprecated_type: BlockType,
    context: ParseContext,
) -> tuple[bool, bool, Block]:
    """Decide whether ``candidate`` was written by this deprecated version.

    Returns:
        (matched, validated, candidate). ``validated`` is False when only
        is_eligible matched. The candidate may carry fixed attributes.
    """
    if deprecation.is_eligible is not None and deprecation.is_eligible(
        dict(candidate.attributes), list(candidate.inner_blocks)
    ):
        return True, False, candidate

    is_valid, _ = validate_block(candidate, deprecated_type, context)
    if not is_valid:
        candidate = apply_built_in_validation_fixes(candidate, deprecated_type)
        is_valid, _ = validate_block(candidate, deprecated_type, context)
    return is_valid, is_valid, candidate


def apply_block_deprecated_versions(
    block: Block,
    raw_block: RawBlock,
    block_type: BlockType,
    context: ParseContext,
) -> Block:
    """Try each deprecated version of ``block_type`` against a parsed block.

    Args:
        block: The block after primary validation.
        raw_block: The normalized raw block it was parsed from.
        block_type: The current block type definition.
        context: The parse context.

    Returns:
        The migrated block, or ``block`` unchanged when nothing matched.
    """
    for index, deprecation in enumerate(block_type.deprecated):
        deprecated_type = deprecation.resolve(block_type)
        candidate = replace(
            block,
            attributes=get_block_attributes(
                deprecated_type, block.original_content, raw_block.attrs, context.meta_lookup
            ),
        )

        matched, validated, candidate = _matches_deprecation(
            candidate, deprecation, deprecated_type, context
        )
        if not matched:
            continue

        attributes = candidate.attributes
        inner_blocks = block.inner_blocks
        if deprecation.migrate is not None:
            migrated = deprecation.migrate(dict(attributes), list(inner_blocks))
            if isinstance(migrated, tuple):
                attributes, inner_blocks = migrated
            else:
                attributes = migrated

        logger.debug("Migrated %s using deprecated version %d", block.name, index)
        migrated_block = replace(block, attributes=attributes, inner_blocks=list(inner_blocks))
        if not validated:
            # Eligibility says nothing about the markup.
            return migrated_block
        return replace(migrated_block, is_valid=True, validation_issues=[])

    return block
