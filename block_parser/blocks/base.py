"""Block type definitions consumed by the parser.

WHY: Every block type declares how its attributes are sourced, how it
serializes itself, and which historical versions it can still read. The
parser works with any block type generically through these dataclasses,
the same way formatters share one base contract.

HOW: BlockType holds the current definition. DeprecatedBlockType holds one
historical version: its own attribute definitions and save function, plus
optional migrate and is_eligible hooks. ``resolve()`` turns a deprecated
version into a stand-alone BlockType so validation and attribute
extraction can treat it like any other type.

RULES:
- save(attributes, inner_blocks) returns the block's own markup as a string
- Attribute definitions are JSON-like dicts, checked at registration
- A deprecated version without supports inherits the current supports
- migrate returns either new attributes or an (attributes, inner_blocks) pair
- To add a block type:
  1. Build a BlockType with attributes and save
  2. Register it with BlockTypeRegistry.register()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

if TYPE_CHECKING:
    from block_parser.core.ir import Block

AttributeDefinition = Dict[str, Any]
SaveFunction = Callable[[Dict[str, Any], List["Block"]], str]
MigrateResult = Union[Dict[str, Any], Tuple[Dict[str, Any], List["Block"]]]
MigrateFunction = Callable[[Dict[str, Any], List["Block"]], MigrateResult]
EligibilityFunction = Callable[[Dict[str, Any], List["Block"]], bool]


@dataclass
class DeprecatedBlockType:
    """A historical version of a block type.

    RULES:
    - attributes: the definitions this version used (not inherited)
    - save: the markup this version produced
    - supports: None means "same as the current block type"
    - migrate: optional upgrade to the current attribute shape
    - is_eligible: optional gate that forces migration without validation
    """

    save: SaveFunction
    attributes: dict[str, AttributeDefinition] = field(default_factory=dict)
    supports: dict[str, Any] | None = None
    migrate: Optional[MigrateFunction] = None
    is_eligible: Optional[EligibilityFunction] = None

    def resolve(self, current: BlockType) -> BlockType:
        """Build a stand-alone BlockType for this version of ``current``."""
        return BlockType(
            name=current.name,
            title=current.title,
            save=self.save,
            attributes=self.attributes,
            supports=current.supports if self.supports is None else self.supports,
        )


@dataclass
class BlockType:
    """The current definition of a block type.

    RULES:
    - name: "namespace/slug", lowercase letters, digits and dashes
    - title: human-readable name, used only in diagnostics
    - attributes: name → definition (type, source, selector, default, ...)
    - supports: feature flags; "customClassName" defaults to True
    - deprecated: historical versions, searched in registration order
    """

    name: str
    save: SaveFunction
    title: str = ""
    attributes: dict[str, AttributeDefinition] = field(default_factory=dict)
    supports: dict[str, Any] = field(default_factory=dict)
    deprecated: list[DeprecatedBlockType] = field(default_factory=list)

    def has_support(self, feature: str, default: bool = False) -> bool:
        """Return whether a supports flag is enabled."""
        return bool(self.supports.get(feature, default))
