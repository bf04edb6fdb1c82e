"""Structural validation: stored markup vs. what ``save`` produces today.

WHY: A block is trustworthy only if its block type, given the extracted
attributes, would write the same markup that is stored in the document.
If it would not, editing the block would silently rewrite the user's
content. Byte equality is far too strict (attribute order, whitespace
between tags, class order and entity spelling vary between writers), so
the comparison is structural.

HOW: Both HTML strings are parsed with BeautifulSoup and flattened into a
token stream (start tag, end tag, text, comment). The streams are walked
in step, skipping whitespace-only text. Tokens must agree in type; start
tags in name and meaningful attributes; text in collapsed whitespace.
Every disagreement is recorded as a deferred ValidationIssue.

RULES:
- Tag names compare case-insensitively; attribute order is ignored
- Empty attributes are ignored unless data-*, boolean, or enumerated
- Boolean attributes are equal whatever their value
- class compares as a set of tokens; style as a map of declarations,
  with zero lengths and url() quoting normalized
- Text compares after trimming and collapsing whitespace runs
- Fallback handler blocks are always valid
- An exception from save makes the block invalid; it never propagates
- Nothing here logs; issues are returned to the caller
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from bs4.element import Comment, NavigableString, PreformattedString, Tag

from block_parser.blocks.base import BlockType
from block_parser.core.attributes import parse_html
from block_parser.core.context import ParseContext
from block_parser.core.ir import Block, ValidationIssue

_WHITESPACE = "\t\n\r\v\f "
_WHITESPACE_RE = re.compile(r"[\t\n\r\v\f ]+")
_NON_WHITESPACE_RE = re.compile(r"[^\t\n\r\v\f ]")
_STYLE_URL_RE = re.compile(r"^url\s*\(['\"\s]*(.*?)['\"\s]*\)$")
_STYLE_SPLIT_RE = re.compile(r";(?![^(]*\))")
_LEADING_FLOAT_RE = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)")

BOOLEAN_ATTRIBUTES = frozenset({
    "allowfullscreen", "allowpaymentrequest", "allowusermedia", "async",
    "autofocus", "autoplay", "checked", "controls", "default", "defer",
    "disabled", "download", "formnovalidate", "hidden", "ismap", "itemscope",
    "loop", "multiple", "muted", "nomodule", "novalidate", "open",
    "playsinline", "readonly", "required", "reversed", "selected",
    "typemustmatch",
})

ENUMERATED_ATTRIBUTES = frozenset({
    "autocapitalize", "autocomplete", "charset", "contenteditable",
    "crossorigin", "decoding", "dir", "draggable", "enctype", "formenctype",
    "formmethod", "http-equiv", "inputmode", "kind", "method", "preload",
    "scope", "shape", "spellcheck", "translate", "type", "wrap",
})

MEANINGFUL_ATTRIBUTES = BOOLEAN_ATTRIBUTES | ENUMERATED_ATTRIBUTES


@dataclass
class HTMLToken:
    """One token of a flattened HTML fragment.

    RULES:
    - type: "StartTag", "EndTag", "Chars" or "Comment"
    - attributes: (name, value) pairs in source order (StartTag only)
    - chars: text content (Chars and Comment only)
    """

    type: str
    tag_name: str = ""
    attributes: list[tuple[str, str]] = field(default_factory=list)
    chars: str = ""

    def __repr__(self) -> str:
        if self.type == "StartTag":
            return f"<{self.tag_name} {dict(self.attributes)!r}>"
        if self.type == "EndTag":
            return f"</{self.tag_name}>"
        return f"{self.type}({self.chars!r})"


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------


def get_html_tokens(html: str) -> list[HTMLToken]:
    """Flatten an HTML fragment into tokens, walking without recursion."""
    tokens: list[HTMLToken] = []
    soup = parse_html(html)
    stack: list[tuple[object, bool]] = [(child, False) for child in reversed(soup.contents)]

    while stack:
        node, closing = stack.pop()
        if closing:
            tokens.append(HTMLToken(type="EndTag", tag_name=node.name))
        elif isinstance(node, Comment):
            tokens.append(HTMLToken(type="Comment", chars=str(node)))
        elif isinstance(node, PreformattedString):
            # Doctype, CDATA, declarations and processing instructions.
            continue
        elif isinstance(node, NavigableString):
            tokens.append(HTMLToken(type="Chars", chars=str(node)))
        elif isinstance(node, Tag):
            tokens.append(HTMLToken(
                type="StartTag",
                tag_name=node.name,
                attributes=[(name, _attribute_text(value)) for name, value in node.attrs.items()],
            ))
            if not node.is_empty_element:
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(node.contents))

    return tokens


def _attribute_text(value: object) -> str:
    if isinstance(value, list):
        return " ".join(value)
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def get_text_pieces_split_on_whitespace(text: str) -> list[str]:
    stripped = text.strip(_WHITESPACE)
    if not stripped:
        return []
    return _WHITESPACE_RE.split(stripped)


def get_text_with_collapsed_whitespace(text: str) -> str:
    return " ".join(get_text_pieces_split_on_whitespace(text))


def _normalized_length(value: str) -> str:
    match = _LEADING_FLOAT_RE.match(value)
    if match and float(match.group(0)) == 0:
        return "0"
    if value.startswith("."):
        return "0" + value
    return value


def get_normalized_style_value(value: str) -> str:
    pieces = [_normalized_length(piece) for piece in get_text_pieces_split_on_whitespace(value)]
    return _STYLE_URL_RE.sub(r"url(\1)", " ".join(pieces))


def get_style_properties(text: str) -> dict[str, str]:
    """Parse a style attribute into {property: normalized value}."""
    text = re.sub(r";?\s*$", "", text)
    properties: dict[str, str] = {}
    for declaration in _STYLE_SPLIT_RE.split(text):
        key, _, value = declaration.partition(":")
        properties[key.strip()] = get_normalized_style_value(value.strip())
    return properties


def _equal_class(actual: str, expected: str) -> bool:
    return set(get_text_pieces_split_on_whitespace(actual)) == set(
        get_text_pieces_split_on_whitespace(expected)
    )


def _equal_style(actual: str, expected: str) -> bool:
    return get_style_properties(actual) == get_style_properties(expected)


def get_meaningful_attribute_pairs(token: HTMLToken) -> list[tuple[str, str]]:
    return [
        (name, value)
        for name, value in token.attributes
        if value or name.startswith("data-") or name in MEANINGFUL_ATTRIBUTES
    ]


# ---------------------------------------------------------------------------
# Token comparison
# ---------------------------------------------------------------------------


def is_equivalent_text_tokens(
    actual: HTMLToken, expected: HTMLToken, issues: list[ValidationIssue]
) -> bool:
    actual_chars = get_text_with_collapsed_whitespace(actual.chars)
    expected_chars = get_text_with_collapsed_whitespace(expected.chars)
    if actual_chars == expected_chars:
        return True
    issues.append(ValidationIssue(
        "warning", "Expected text `%s`, saw `%s`.", (expected_chars, actual_chars)
    ))
    return False


def is_equal_tag_attribute_pairs(
    actual: list[tuple[str, str]],
    expected: list[tuple[str, str]],
    issues: list[ValidationIssue],
) -> bool:
    if len(actual) != len(expected):
        issues.append(ValidationIssue(
            "warning", "Expected attributes %r, instead saw %r.", (expected, actual)
        ))
        return False

    expected_by_name = {name.lower(): value for name, value in expected}
    for name, actual_value in actual:
        name = name.lower()
        if name not in expected_by_name:
            issues.append(ValidationIssue(
                "warning", "Encountered unexpected attribute `%s`.", (name,)
            ))
            return False

        expected_value = expected_by_name[name]
        if name == "class":
            is_equal = _equal_class(actual_value, expected_value)
        elif name == "style":
            is_equal = _equal_style(actual_value, expected_value)
        elif name in BOOLEAN_ATTRIBUTES:
            is_equal = True
        else:
            is_equal = actual_value == expected_value

        if not is_equal:
            issues.append(ValidationIssue(
                "warning",
                "Expected attribute `%s` of value `%s`, saw `%s`.",
                (name, expected_value, actual_value),
            ))
            return False
    return True


def _is_equal_start_tags(
    actual: HTMLToken, expected: HTMLToken, issues: list[ValidationIssue]
) -> bool:
    if actual.tag_name.lower() != expected.tag_name.lower():
        issues.append(ValidationIssue(
            "warning",
            "Expected tag name `%s`, instead saw `%s`.",
            (expected.tag_name, actual.tag_name),
        ))
        return False
    return is_equal_tag_attribute_pairs(
        get_meaningful_attribute_pairs(actual),
        get_meaningful_attribute_pairs(expected),
        issues,
    )


def _next_non_whitespace_token(tokens: Deque[HTMLToken]) -> Optional[HTMLToken]:
    while tokens:
        token = tokens.popleft()
        if token.type != "Chars" or _NON_WHITESPACE_RE.search(token.chars):
            return token
    return None


def is_equivalent_html(
    actual: str,
    expected: str,
    issues: Optional[list[ValidationIssue]] = None,
) -> bool:
    """Compare two HTML fragments structurally.

    Args:
        actual: Markup stored in the document.
        expected: Markup generated by the block type's save function.
        issues: Optional list that receives a ValidationIssue on mismatch.

    Returns:
        True when the fragments are equivalent.
    """
    if issues is None:
        issues = []
    if actual == expected:
        return True

    actual_tokens = deque(get_html_tokens(actual))
    expected_tokens = deque(get_html_tokens(expected))

    while True:
        actual_token = _next_non_whitespace_token(actual_tokens)
        if actual_token is None:
            break
        expected_token = _next_non_whitespace_token(expected_tokens)
        if expected_token is None:
            issues.append(ValidationIssue(
                "warning", "Expected end of content, instead saw %r.", (actual_token,)
            ))
            return False

        if actual_token.type != expected_token.type:
            issues.append(ValidationIssue(
                "warning",
                "Expected token of type `%s` (%r), instead saw `%s` (%r).",
                (expected_token.type, expected_token, actual_token.type, actual_token),
            ))
            return False

        if actual_token.type == "StartTag":
            if not _is_equal_start_tags(actual_token, expected_token, issues):
                return False
        elif actual_token.type in ("Chars", "Comment"):
            if not is_equivalent_text_tokens(actual_token, expected_token, issues):
                return False

    leftover = _next_non_whitespace_token(expected_tokens)
    if leftover is not None:
        issues.append(ValidationIssue(
            "warning", "Expected %r, instead saw end of content.", (leftover,)
        ))
        return False
    return True


# ---------------------------------------------------------------------------
# Block validation
# ---------------------------------------------------------------------------


def get_save_content(block_type: BlockType, block: Block) -> str:
    """Run the block type's save function and normalize its result."""
    content = block_type.save(block.attributes, block.inner_blocks)
    return "" if content is None else str(content)


def validate_block(
    block: Block,
    block_type: BlockType,
    context: ParseContext,
) -> tuple[bool, list[ValidationIssue]]:
    """Check a block's stored markup against its block type's save output.

    Returns:
        (is_valid, issues). Identical inputs always give identical results.
    """
    if context.is_fallback_name(block.name):
        return True, []

    issues: list[ValidationIssue] = []
    try:
        generated = get_save_content(block_type, block)
    except Exception as e:  # save functions are third-party code
        issues.append(ValidationIssue(
            "error",
            "Block validation failed because an error occurred while generating block content:\n\n%s",
            (f"{type(e).__name__}: {e}",),
        ))
        return False, issues

    is_valid = is_equivalent_html(block.original_content, generated, issues)
    if not is_valid:
        issues.append(ValidationIssue(
            "error",
            "Block validation failed for `%s` (%s).\n\n"
            "Content generated by `save` function:\n\n%s\n\n"
            "Content retrieved from post body:\n\n%s",
            (block_type.name, block_type.title or block_type.name, generated, block.original_content),
        ))
    return is_valid, issues
