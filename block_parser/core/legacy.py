"""Legacy block name and attribute conversion.

WHY: Over a block library's lifetime blocks get renamed (``core/text`` →
``core/paragraph``) or collapsed into a canonical form with an attribute
(``core-embed/youtube`` → ``core/embed`` with a provider slug). Documents
saved years ago still carry the old names and must keep parsing.

HOW: A table of LegacyRule entries. Each rule matches an old name exactly,
or a name family by prefix, and names the new block plus an optional
attribute transform. The first matching rule wins. Hosts can pass their
own table through the parse context.

RULES:
- Applied exactly once per block, after normalization, before lookup
- Pure: the incoming attrs dict is never mutated; transforms get a copy
- Unmapped names pass through unchanged
- An old name without a namespace means "core/<name>"
- transform(attrs, old_name) returns the new attrs dict
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

AttributeTransform = Callable[[Dict[str, Any], str], Dict[str, Any]]


@dataclass(frozen=True)
class LegacyRule:
    """One rename entry.

    RULES:
    - old_name: exact name, or the name prefix when prefix=True
    - new_name: the canonical block name
    - transform: optional attrs rewrite, receives a copy and the old name
    """

    old_name: str
    new_name: str
    transform: Optional[AttributeTransform] = None
    prefix: bool = False

    def matches(self, name: str) -> bool:
        if self.prefix:
            return name.startswith(self.old_name)
        return name == _qualify(self.old_name)


def _qualify(name: str) -> str:
    return name if "/" in name else "core/" + name


# ---------------------------------------------------------------------------
# Attribute transforms for the built-in renames
# ---------------------------------------------------------------------------

_DEPRECATED_EMBED_PROVIDERS = {
    "speaker": "speaker-deck",
    "polldaddy": "crowdsignal",
}

_UNRESPONSIVE_EMBED_PROVIDERS = ("amazon-kindle", "wordpress")


def _social_link_service(attrs: dict[str, Any], old_name: str) -> dict[str, Any]:
    attrs["service"] = old_name[len("core/social-link-"):]
    return attrs


def _embed_provider(attrs: dict[str, Any], old_name: str) -> dict[str, Any]:
    provider_slug = old_name[len("core-embed/"):]
    attrs["providerNameSlug"] = _DEPRECATED_EMBED_PROVIDERS.get(provider_slug, provider_slug)
    if provider_slug not in _UNRESPONSIVE_EMBED_PROVIDERS:
        attrs["responsive"] = True
    return attrs


def _comments_query_loop_class(attrs: dict[str, Any], old_name: str) -> dict[str, Any]:
    class_name = attrs.get("className") or ""
    if "wp-block-comments-query-loop" not in class_name:
        attrs["className"] = " ".join(["wp-block-comments-query-loop", class_name])
    return attrs


def _legacy_comments(attrs: dict[str, Any], old_name: str) -> dict[str, Any]:
    attrs["legacy"] = True
    return attrs


DEFAULT_LEGACY_RULES: Tuple[LegacyRule, ...] = (
    LegacyRule("core/cover-image", "core/cover"),
    LegacyRule("core/text", "core/paragraph"),
    LegacyRule("core/cover-text", "core/paragraph"),
    LegacyRule("core/social-link-", "core/social-link", _social_link_service, prefix=True),
    LegacyRule("core-embed/", "core/embed", _embed_provider, prefix=True),
    LegacyRule("core/post-comment-author", "core/comment-author-name"),
    LegacyRule("core/post-comment-content", "core/comment-content"),
    LegacyRule("core/post-comment-date", "core/comment-date"),
    LegacyRule("core/comments-query-loop", "core/comments", _comments_query_loop_class),
    LegacyRule("core/post-comments", "core/comments", _legacy_comments),
)
"""Renames carried over from earlier versions of the core block library."""


def convert_legacy_block(
    name: str,
    attrs: dict[str, Any],
    rules: Iterable[LegacyRule] = DEFAULT_LEGACY_RULES,
) -> tuple[str, dict[str, Any]]:
    """Map a legacy block name and attributes to their canonical form.

    Args:
        name: Normalized block name.
        attrs: Normalized delimiter attributes.
        rules: Rename table, searched in order.

    Returns:
        (name, attrs); the input objects when no rule matches.
    """
    for rule in rules:
        if not rule.matches(name):
            continue
        new_attrs = dict(attrs)
        if rule.transform is not None:
            new_attrs = rule.transform(new_attrs, name)
        return rule.new_name, new_attrs
    return name, attrs
