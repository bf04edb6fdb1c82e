"""Intermediate representation dataclasses for parsed block documents.

WHY: The tokenizer only knows about comment delimiters; it produces untyped
raw blocks. Editors need typed blocks with schema-derived attributes and a
validity verdict. Two separate dataclasses keep the tokenizer contract and
the final tree contract independent of each other.

HOW: Three dataclasses form the representation:
  RawBlock        — one delimited (or freeform) span as the tokenizer saw it
  Block           — the fully parsed, validated block
  ValidationIssue — a deferred log request describing one mismatch

RULES:
- RawBlock.inner_content holds one None placeholder per inner block
- RawBlock.delimiters is the exact opener/closer text, or None for
  freeform spans and programmatically built blocks
- Block.original_content is the normalized inner HTML the block came from
- Blocks are never mutated after parse_document returns
- ValidationIssue is never emitted by the parser; hosts call emit()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RawBlock:
    """An untyped block span produced by the tokenizer.

    WHY: Schema resolution needs the block name, the JSON attributes from
    the opening delimiter, and the block's own HTML kept apart from the HTML
    of nested blocks. Fallback wrapping also needs enough information to
    rebuild the original bytes.

    RULES:
    - name: namespaced block name ("core/quote"), or None for text found
      outside any delimiter
    - attrs: parsed delimiter JSON, or None when absent or malformed
    - inner_html: the block's own markup, nested blocks excluded
    - inner_content: inner_html fragments with None where a child sits
    - inner_blocks: nested raw blocks in document order
    - delimiters: (opener, closer) exactly as written; closer is "" for
      void blocks
    """

    name: str | None
    attrs: dict[str, Any] | None = field(default_factory=dict)
    inner_html: str = ""
    inner_content: list[str | None] = field(default_factory=list)
    inner_blocks: list[RawBlock] = field(default_factory=list)
    delimiters: tuple[str, str] | None = None


@dataclass
class ValidationIssue:
    """A deferred diagnostic produced while validating a block.

    WHY: Validation runs many times per parse (primary check, fix pass,
    every deprecated version). Emitting logs eagerly would flood the host
    with messages for attempts that later succeed. Issues are returned as
    data and the host decides whether and where to log them.

    RULES:
    - level: "warning" or "error"
    - message: a %-style template, args fill it in
    - format() renders the message; emit() sends it to a logger
    """

    level: str
    message: str
    args: tuple[Any, ...] = ()

    def format(self) -> str:
        """Render the message with its arguments."""
        if not self.args:
            return self.message
        return self.message % self.args

    def emit(self, logger: logging.Logger) -> None:
        """Send this issue to a stdlib logger at its own level."""
        level = logging.ERROR if self.level == "error" else logging.WARNING
        logger.log(level, self.message, *self.args)


@dataclass
class Block:
    """A fully parsed block.

    WHY: This is what the parser returns to hosts: the resolved block name,
    attributes typed and defaulted from the block type's schema, parsed
    inner blocks, and a verdict on whether the stored markup matches what
    the block type would produce today.

    RULES:
    - name: never empty
    - attributes: one entry per declared attribute (None when unresolved)
    - inner_blocks: surviving parsed children, in document order
    - original_content: the normalized inner HTML the block was parsed from
    - is_valid / validation_issues: set by validation and migration
    """

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    inner_blocks: list[Block] = field(default_factory=list)
    original_content: str = ""
    is_valid: bool = False
    validation_issues: list[ValidationIssue] = field(default_factory=list)
