"""Schema-driven attribute extraction.

WHY: A block's attributes live in two places: JSON in its opening
delimiter, and the markup itself (an image's ``src``, a quote's text).
Block types declare where each attribute comes from; this module turns
those declarations plus the raw block into a flat attribute dict.

HOW: Each declared attribute is resolved by its ``source``:
  (none)    — read from the delimiter JSON by key
  attribute — an HTML attribute of the element matched by ``selector``
              (boolean types report presence)
  property  — innerHTML / outerHTML / textContent / nodeName of the match
  html      — inner HTML of the match (or, with ``multiline``, the outer
              HTML of its children with that tag)
  text      — text content of the match
  tag       — lowercase tag name of the match
  query     — one dict per element matched by ``selector``, built from the
              nested ``query`` definitions
  raw       — the block's whole inner HTML
  meta      — the context's meta lookup, by ``meta`` key
HTML is parsed once per block with BeautifulSoup; selectors are CSS (via
soupsieve). Strings read from markup are coerced to a declared number,
integer or boolean type. The result is checked against the declared
``type`` and ``enum`` with jsonschema.

RULES:
- Every declared attribute appears in the result
- Missing, uncoercible, or schema-invalid values fall back to a deep copy
  of ``default`` (None when there is no default)
- Extraction never raises for any markup
- No selector means the whole inner HTML is the match
"""

from __future__ import annotations

import copy
import json
import math
from functools import lru_cache
from typing import Any, Optional

import jsonschema
from bs4 import BeautifulSoup
from bs4.element import Tag

from block_parser.blocks.base import AttributeDefinition, BlockType
from block_parser.core.context import MetaLookup

# Sentinel for "no value found", distinct from a JSON null.
_MISSING = object()

_DOM_SOURCES = frozenset({"attribute", "property", "html", "text", "tag", "query"})


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML fragment, keeping ``class`` as a plain string."""
    return BeautifulSoup(html, "html.parser", multi_valued_attributes=None)


def _select(node: Tag, selector: Optional[str]) -> Optional[Tag]:
    if not selector:
        return node
    return node.select_one(selector)


def _is_document(node: Tag) -> bool:
    return isinstance(node, BeautifulSoup)


def _match_property(match: Tag, name: str) -> Any:
    if name == "innerHTML":
        return match.decode_contents()
    if name == "outerHTML":
        return match.decode_contents() if _is_document(match) else str(match)
    if name == "textContent":
        return match.get_text()
    if name == "nodeName":
        return _MISSING if _is_document(match) else match.name.upper()
    return _MISSING


def _match(node: Tag, definition: AttributeDefinition) -> Any:
    """Evaluate one DOM-based definition against a parsed node."""
    source = definition.get("source")
    selector = definition.get("selector")

    if source == "query":
        return [
            {
                key: _resolve_dom_value(match, sub_definition)
                for key, sub_definition in definition.get("query", {}).items()
            }
            for match in node.select(selector)
        ]

    match = _select(node, selector)

    if source == "attribute":
        value = match.get(definition["attribute"]) if match is not None else None
        if _declares_type(definition, "boolean"):
            return value is not None
        return _MISSING if value is None else value

    if match is None:
        return _MISSING

    if source == "property":
        return _match_property(match, definition["property"])
    if source == "html":
        multiline = definition.get("multiline")
        if multiline:
            return "".join(
                str(child)
                for child in match.children
                if isinstance(child, Tag) and child.name == multiline
            )
        return match.decode_contents()
    if source == "text":
        return match.get_text()
    if source == "tag":
        return _MISSING if _is_document(match) else match.name.lower()
    return _MISSING


def _declared_types(definition: AttributeDefinition) -> list[str]:
    declared = definition.get("type")
    if declared is None:
        return []
    return list(declared) if isinstance(declared, list) else [declared]


def _declares_type(definition: AttributeDefinition, type_name: str) -> bool:
    return type_name in _declared_types(definition)


def _coerce(value: Any, definition: AttributeDefinition) -> Any:
    """Convert a markup string to the declared scalar type where possible.

    Returns the value unchanged when no conversion applies; schema
    validation then decides whether it is acceptable.
    """
    types = _declared_types(definition)
    if not isinstance(value, str) or not types or "string" in types:
        return value

    text = value.strip()
    for type_name in types:
        if type_name == "integer":
            try:
                return int(text)
            except ValueError:
                continue
        if type_name == "number":
            try:
                number = float(text)
            except ValueError:
                continue
            if not math.isfinite(number):
                continue
            return int(number) if number.is_integer() and "." not in text else number
        if type_name == "boolean" and text.lower() in ("true", "false"):
            return text.lower() == "true"
    return value


@lru_cache(maxsize=256)
def _validator(schema_key: str) -> jsonschema.Draft7Validator:
    return jsonschema.Draft7Validator(json.loads(schema_key))


def is_valid_value(value: Any, definition: AttributeDefinition) -> bool:
    """Check a value against the definition's ``type`` and ``enum``."""
    schema = {key: definition[key] for key in ("type", "enum") if key in definition}
    if not schema:
        return True
    return _validator(json.dumps(schema, sort_keys=True)).is_valid(value)


def _finalize(value: Any, definition: AttributeDefinition) -> Any:
    if value is _MISSING or not is_valid_value(value, definition):
        return copy.deepcopy(definition.get("default"))
    return value


def _resolve_dom_value(node: Tag, definition: AttributeDefinition) -> Any:
    return _finalize(_coerce(_match(node, definition), definition), definition)


def parse_with_attribute_schema(html: str, definition: AttributeDefinition) -> Any:
    """Evaluate a single DOM-based attribute definition against HTML.

    Returns:
        The resolved value, or the definition's default when nothing matched.
    """
    return _resolve_dom_value(parse_html(html), definition)


def get_block_attribute(
    key: str,
    definition: AttributeDefinition,
    root: Optional[BeautifulSoup],
    comment_attributes: dict[str, Any] | None,
    inner_html: str,
    meta_lookup: Optional[MetaLookup] = None,
) -> Any:
    """Resolve one declared attribute.

    Args:
        key: Attribute name, used for delimiter JSON lookups.
        definition: The attribute's declaration.
        root: Parsed inner HTML (required for DOM-based sources).
        comment_attributes: Delimiter JSON attributes.
        inner_html: The block's normalized inner HTML.
        meta_lookup: Resolver for "meta" sources.

    Returns:
        The typed value, or the default.
    """
    source = definition.get("source")

    if source is None:
        value = (comment_attributes or {}).get(key, _MISSING)
    elif source == "raw":
        value = inner_html
    elif source == "meta":
        value = _MISSING
        if meta_lookup is not None:
            found = meta_lookup(definition["meta"], definition)
            value = _MISSING if found is None else found
    elif root is not None:
        return _resolve_dom_value(root, definition)
    else:
        value = _MISSING

    return _finalize(value, definition)


def get_block_attributes(
    block_type: BlockType,
    inner_html: str,
    comment_attributes: dict[str, Any] | None = None,
    meta_lookup: Optional[MetaLookup] = None,
) -> dict[str, Any]:
    """Resolve every attribute a block type declares.

    WHY: Validation, fixes and migrations all need the same extraction,
    each with a different block type definition (current or deprecated).

    Args:
        block_type: The definition whose attributes are extracted.
        inner_html: The block's normalized inner HTML.
        comment_attributes: Delimiter JSON attributes.
        meta_lookup: Resolver for "meta" sources.

    Returns:
        Attribute name → value, in declaration order.
    """
    needs_dom = any(
        definition.get("source") in _DOM_SOURCES
        for definition in block_type.attributes.values()
    )
    root = parse_html(inner_html) if needs_dom else None

    return {
        key: get_block_attribute(
            key, definition, root, comment_attributes, inner_html, meta_lookup
        )
        for key, definition in block_type.attributes.items()
    }
