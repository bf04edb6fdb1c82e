"""Built-in fixes applied to blocks that fail validation.

WHY: Some mismatches are not real content differences. The common case:
a user added a custom CSS class to a block in a version that did not
record it as an attribute, so the stored markup has an extra class that
``save`` does not reproduce. Recovering the class as the ``className``
attribute makes such blocks valid without user action.

HOW: fix_custom_classname() compares the classes on the root element of
the stored markup with those ``save`` produces without any className.
Extra classes become the className attribute.

RULES:
- Runs at most once per validation attempt, only on invalid blocks
- Applies only when the block type supports customClassName (default on)
- No extra classes and non-empty save output → className is reset
- Fixes return new Block objects; the input is never mutated
"""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from typing import Any, Sequence

from block_parser.blocks.base import BlockType
from block_parser.core.attributes import parse_with_attribute_schema
from block_parser.core.ir import Block

logger = logging.getLogger(__name__)

_ROOT_CLASS_DEFINITION = {
    "type": "string",
    "source": "attribute",
    "selector": "[data-custom-class-name] > *",
    "attribute": "class",
}


def get_html_root_element_classes(inner_html: str) -> list[str]:
    """Return the class tokens of the first root element in ``inner_html``."""
    parsed = parse_with_attribute_schema(
        f"<div data-custom-class-name>{inner_html}</div>", _ROOT_CLASS_DEFINITION
    )
    return parsed.split() if parsed else []


def fix_custom_classname(
    attributes: dict[str, Any],
    block_type: BlockType,
    inner_html: str,
    inner_blocks: Sequence[Block] = (),
) -> dict[str, Any]:
    """Recover custom classes from stored markup into ``className``.

    Returns:
        The (possibly new) attribute dict.
    """
    if not block_type.has_support("customClassName", True):
        return attributes

    attributes_sans_class_name = {
        key: value for key, value in attributes.items() if key != "className"
    }
    serialized = block_type.save(attributes_sans_class_name, list(inner_blocks))
    default_classes = get_html_root_element_classes(serialized or "")
    actual_classes = get_html_root_element_classes(inner_html)
    custom_classes = [name for name in actual_classes if name not in default_classes]

    if custom_classes:
        return {**attributes, "className": " ".join(custom_classes)}
    if serialized and "className" in attributes:
        # Declared attributes stay present, reset to their default.
        definition = block_type.attributes.get("className")
        if definition is not None:
            return {**attributes, "className": copy.deepcopy(definition.get("default"))}
        return attributes_sans_class_name
    return attributes


def apply_built_in_validation_fixes(block: Block, block_type: BlockType) -> Block:
    """Apply every built-in fix to an invalid block.

    RULES:
    - An exception from save while fixing leaves the block unchanged; the
      following validation reports the failure
    """
    try:
        attributes = fix_custom_classname(
            block.attributes, block_type, block.original_content, block.inner_blocks
        )
    except Exception:  # save functions are third-party code
        logger.debug("Built-in fixes skipped for %s: save raised", block.name, exc_info=True)
        return block

    if attributes == block.attributes:
        return block
    logger.debug("Applied built-in fixes to %s", block.name)
    return replace(block, attributes=attributes)
