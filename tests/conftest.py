"""Shared test fixtures for the block_parser test suite.

WHY: Almost every pipeline stage needs registered block types to work
against. Defining one small block library here keeps the save functions
consistent across test modules, so a markup mismatch in one test means
the same thing everywhere.

HOW: Plain functions build each BlockType; fixtures assemble them into a
fresh BlockTypeRegistry and a ParseContext per test.

RULES:
- Save functions produce exactly the markup used in the test documents
- Every fixture returns a new registry; tests may register more types
- core/quote carries one deprecated version (citation in <footer>)
"""

from typing import Any, Dict, List

import pytest

from block_parser.blocks import BlockTypeRegistry
from block_parser.blocks.base import BlockType, DeprecatedBlockType
from block_parser.core.context import ParseContext


# ---------------------------------------------------------------------------
# Save functions
# ---------------------------------------------------------------------------

def _class_attr(*names: Any) -> str:
    classes = " ".join(name for name in names if name)
    return f' class="{classes}"' if classes else ""


def save_freeform(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    return attributes.get("content") or ""


def save_missing(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    return attributes.get("originalContent") or ""


def save_paragraph(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    align = attributes.get("align")
    class_attr = _class_attr(
        f"has-text-align-{align}" if align else None,
        attributes.get("className"),
    )
    return f"<p{class_attr}>{attributes.get('content') or ''}</p>"


def save_quote(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    citation = attributes.get("citation")
    cite = f"<cite>{citation}</cite>" if citation else ""
    return f"<blockquote>{attributes.get('value') or ''}{cite}</blockquote>"


def save_quote_with_footer(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    citation = attributes.get("citation")
    footer = f"<footer>{citation}</footer>" if citation else ""
    return f"<blockquote>{attributes.get('value') or ''}{footer}</blockquote>"


def save_group(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    tag = attributes.get("tagName") or "div"
    return f'<{tag} class="wp-block-group"></{tag}>'


# ---------------------------------------------------------------------------
# Block type builders
# ---------------------------------------------------------------------------

def freeform_block_type() -> BlockType:
    return BlockType(
        name="core/freeform",
        title="Classic",
        save=save_freeform,
        attributes={"content": {"type": "string", "source": "raw"}},
        supports={"customClassName": False},
    )


def missing_block_type() -> BlockType:
    return BlockType(
        name="core/missing",
        title="Unsupported",
        save=save_missing,
        attributes={
            "originalName": {"type": "string"},
            "originalUndelimitedContent": {"type": "string"},
            "originalContent": {"type": "string", "source": "raw"},
        },
        supports={"customClassName": False},
    )


def paragraph_block_type() -> BlockType:
    return BlockType(
        name="core/paragraph",
        title="Paragraph",
        save=save_paragraph,
        attributes={
            "content": {"type": "string", "source": "html", "selector": "p", "default": ""},
            "align": {"type": "string"},
            "className": {"type": "string"},
        },
    )


QUOTE_ATTRIBUTES = {
    "value": {
        "type": "string",
        "source": "html",
        "selector": "blockquote",
        "multiline": "p",
        "default": "",
    },
    "citation": {"type": "string", "source": "html", "selector": "cite", "default": ""},
}


def quote_block_type() -> BlockType:
    return BlockType(
        name="core/quote",
        title="Quote",
        save=save_quote,
        attributes=dict(QUOTE_ATTRIBUTES),
        deprecated=[
            DeprecatedBlockType(
                save=save_quote_with_footer,
                attributes={
                    **QUOTE_ATTRIBUTES,
                    "citation": {
                        "type": "string",
                        "source": "html",
                        "selector": "footer",
                        "default": "",
                    },
                },
            ),
        ],
    )


def group_block_type() -> BlockType:
    return BlockType(
        name="core/group",
        title="Group",
        save=save_group,
        attributes={"tagName": {"type": "string", "default": "div"}},
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry():
    """A registry holding the fallback handlers and three content blocks."""
    return BlockTypeRegistry([
        freeform_block_type(),
        missing_block_type(),
        paragraph_block_type(),
        quote_block_type(),
        group_block_type(),
    ])


@pytest.fixture
def context(registry):
    """A ParseContext with the default handler names and legacy table."""
    return ParseContext(registry=registry)
