"""Parse context: every input a parse needs besides the document.

WHY: Parsing depends on the block registry, the fallback handler names,
the legacy rename table, and a few pluggable collaborators (tokenizer,
raw serializer, auto-paragraph upgrade, meta lookup). Reading these from
module globals would make the parser order-dependent and hard to test.
One immutable object passed down the recursion makes every parse a pure
function of (document, context).

HOW: ParseContext is a frozen dataclass. ``from_config()`` builds one from
the constants in block_parser.config; tests and hosts build their own or
override single fields.

RULES:
- A context is never mutated; derive a new one with dataclasses.replace
- The registry must not be modified while a parse is running
- A None handler name disables that fallback
- max_depth bounds block nesting; deeper documents are rejected
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from block_parser import config
from block_parser.blocks import BlockTypeRegistry
from block_parser.blocks.base import BlockType
from block_parser.core.autop import autop
from block_parser.core.ir import RawBlock
from block_parser.core.legacy import DEFAULT_LEGACY_RULES, LegacyRule
from block_parser.core.serializer import serialize_raw_block
from block_parser.core.tokenizer import tokenize

MetaLookup = Callable[[str, Dict[str, Any]], Any]


@dataclass(frozen=True)
class ParseContext:
    """Immutable inputs threaded through one parse.

    RULES:
    - registry: block types available to this parse
    - freeform_handler_name: type for text outside any block
    - unregistered_handler_name: type for blocks with unknown names
    - default_block_name: type a host inserts for new content
    - legacy_rules: rename table applied before lookup
    - tokenizer / raw_serializer / html_upgrade: pluggable collaborators
    - meta_lookup: resolves "meta"-sourced attributes; None → defaults
    - max_depth: deepest accepted nesting
    """

    registry: BlockTypeRegistry
    freeform_handler_name: Optional[str] = "core/freeform"
    unregistered_handler_name: Optional[str] = "core/missing"
    default_block_name: Optional[str] = "core/paragraph"
    legacy_rules: Tuple[LegacyRule, ...] = DEFAULT_LEGACY_RULES
    tokenizer: Callable[[str], List[RawBlock]] = tokenize
    raw_serializer: Callable[..., str] = serialize_raw_block
    html_upgrade: Callable[[str], str] = autop
    meta_lookup: Optional[MetaLookup] = None
    max_depth: int = 200

    @classmethod
    def from_config(cls, registry: BlockTypeRegistry, **overrides: Any) -> ParseContext:
        """Build a context from block_parser.config, with field overrides."""
        values: dict[str, Any] = {
            "freeform_handler_name": config.FREEFORM_HANDLER_NAME,
            "unregistered_handler_name": config.UNREGISTERED_HANDLER_NAME,
            "default_block_name": config.DEFAULT_BLOCK_NAME,
            "max_depth": config.MAX_NESTING_DEPTH,
        }
        values.update(overrides)
        return cls(registry=registry, **values)

    def lookup_block_type(self, name: str | None) -> BlockType | None:
        return self.registry.get(name)

    def is_fallback_name(self, name: str | None) -> bool:
        """True when ``name`` is one of the configured fallback handlers."""
        if name is None:
            return False
        return name in (self.freeform_handler_name, self.unregistered_handler_name)
