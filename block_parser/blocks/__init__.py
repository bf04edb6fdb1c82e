"""Block type registry: name-keyed lookup of block definitions.

WHY: The parser resolves every raw block by name. A single registry object
makes lookup trivial and keeps registration checks in one place: a broken
definition is rejected when it is registered, not discovered halfway
through parsing somebody's document.

HOW: BlockTypeRegistry maps names to BlockType instances. ``register()``
checks the name format, rejects duplicates and non-callable hooks, and
validates attribute definitions (current and deprecated) against the
bundled ``attribute-schema.json`` with jsonschema.

RULES:
- Names are "namespace/slug" with lowercase letters, digits and dashes
- Registering a name twice raises BlockRegistrationError
- The registry is mutated only by setup code, never during a parse
- ``get()`` returns None for unknown names (and for None)
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator

import jsonschema

from block_parser.blocks.base import BlockType, DeprecatedBlockType

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).resolve().parent / "attribute-schema.json"

_NAME_RE = re.compile(r"^[a-z][a-z0-9-]*/[a-z][a-z0-9-]*$")


class BlockRegistrationError(ValueError):
    """Raised when a block type definition cannot be registered.

    WHY: Setup code needs a typed exception to distinguish definition
    mistakes from other errors during application start-up.
    """


def _load_schema() -> dict[str, Any]:
    """Load the attribute definition schema from disk.

    Cached at module level after first call to avoid repeated I/O.
    """
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def _check_attributes(name: str, attributes: dict[str, Any], label: str) -> None:
    try:
        jsonschema.validate(instance=attributes, schema=_get_schema())
    except jsonschema.ValidationError as e:
        path = "/".join(str(part) for part in e.absolute_path) or "(root)"
        raise BlockRegistrationError(
            f'Block "{name}" has invalid {label} at {path}: {e.message}'
        ) from e


def _check_deprecation(name: str, index: int, deprecation: DeprecatedBlockType) -> None:
    label = f"deprecated[{index}]"
    if not callable(deprecation.save):
        raise BlockRegistrationError(
            f'Block "{name}" {label}: the "save" property must be a valid function.'
        )
    for hook in ("migrate", "is_eligible"):
        value = getattr(deprecation, hook)
        if value is not None and not callable(value):
            raise BlockRegistrationError(
                f'Block "{name}" {label}: the "{hook}" property must be a valid function.'
            )
    _check_attributes(name, deprecation.attributes, f"{label} attribute definitions")


class BlockTypeRegistry:
    """Holds registered block types, keyed by name.

    WHY: Parsing needs a read-only lookup; setup code needs checked
    registration. Both live here so a ParseContext can carry one object.

    HOW: A plain dict behind ``register``/``unregister``/``get``. The
    registry is iterable (in registration order) and supports ``in``.
    """

    def __init__(self, block_types: Iterable[BlockType] = ()) -> None:
        self._block_types: dict[str, BlockType] = {}
        for block_type in block_types:
            self.register(block_type)

    def register(self, block_type: BlockType) -> BlockType:
        """Validate and register a block type.

        RULES:
        - Name must match "namespace/slug"
        - Name must not already be registered
        - save (and deprecated save/migrate/is_eligible) must be callable
        - Attribute definitions must satisfy attribute-schema.json

        Returns:
            The registered block type, unchanged.

        Raises:
            BlockRegistrationError: If any rule above is violated.
        """
        name = block_type.name
        if not isinstance(name, str) or not _NAME_RE.match(name):
            raise BlockRegistrationError(
                "Block names must contain a namespace prefix, include only "
                "lowercase alphanumeric characters or dashes, and start with "
                f"a letter. Example: my-plugin/my-custom-block (got {name!r})"
            )
        if name in self._block_types:
            raise BlockRegistrationError(f'Block "{name}" is already registered.')
        if not callable(block_type.save):
            raise BlockRegistrationError(
                f'Block "{name}": the "save" property must be a valid function.'
            )

        _check_attributes(name, block_type.attributes, "attribute definitions")
        for index, deprecation in enumerate(block_type.deprecated):
            _check_deprecation(name, index, deprecation)

        self._block_types[name] = block_type
        logger.debug("Registered block type %s", name)
        return block_type

    def unregister(self, name: str) -> BlockType:
        """Remove a block type and return it.

        Raises:
            BlockRegistrationError: If the name is not registered.
        """
        try:
            block_type = self._block_types.pop(name)
        except KeyError:
            raise BlockRegistrationError(f'Block "{name}" is not registered.') from None
        logger.debug("Unregistered block type %s", name)
        return block_type

    def get(self, name: str | None) -> BlockType | None:
        """Look up a block type by name; None when unknown."""
        if name is None:
            return None
        return self._block_types.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._block_types

    def __iter__(self) -> Iterator[BlockType]:
        return iter(list(self._block_types.values()))

    def __len__(self) -> int:
        return len(self._block_types)
