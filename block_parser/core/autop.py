"""Automatic paragraph upgrade for freeform content.

WHY: Content written before blocks existed relies on implicit paragraphs:
blank lines separate paragraphs and single newlines are line breaks. When
such text lands in the freeform handler it must be upgraded to explicit
``<p>`` and ``<br />`` markup, otherwise it renders as one run-on line.

HOW: A sequence of regular-expression rewrites, applied in a fixed order:
protect <pre> blocks, put block-level tags on their own paragraphs, split
on blank lines, wrap each piece in <p>, then remove the paragraph wrappers
that landed around block-level tags, and finally turn remaining single
newlines into <br />.

RULES:
- Idempotent: autop(autop(x)) == autop(x); re-parsing upgraded content
  must never double-wrap paragraphs
- Whitespace-only input becomes ""
- <pre> contents are never touched
- Newlines inside tags are preserved (not turned into <br />)
- <script> and <style> contents keep their newlines
"""

from __future__ import annotations

import re

_ALL_BLOCKS = (
    "(?:table|thead|tfoot|caption|col|colgroup|tbody|tr|td|th|div|dl|dd|dt|"
    "ul|ol|li|pre|form|map|area|blockquote|address|math|style|p|h[1-6]|hr|"
    "fieldset|legend|section|article|aside|hgroup|header|footer|nav|figure|"
    "figcaption|details|menu|summary)"
)

# Comments, then ordinary tags. Used to protect newlines inside tags.
_HTML_TAG_RE = re.compile(r"(<!--.*?-->|<[^>]*>)", re.DOTALL)

_NEWLINE_PLACEHOLDER = " <!-- wpnl --> "


def _replace_in_html_tags(text: str, needle: str, replacement: str) -> str:
    parts = _HTML_TAG_RE.split(text)
    # Odd indices are the captured tags.
    for i in range(1, len(parts), 2):
        if needle in parts[i]:
            parts[i] = parts[i].replace(needle, replacement)
    return "".join(parts)


def _protect_pre_tags(text: str) -> tuple[str, list[tuple[str, str]]]:
    pre_tags: list[tuple[str, str]] = []
    if "<pre" not in text:
        return text, pre_tags

    text_parts = text.split("</pre>")
    last_text = text_parts.pop()
    result = ""
    for i, part in enumerate(text_parts):
        start = part.find("<pre")
        if start == -1:
            result += part
            continue
        name = f"<pre wp-pre-tag-{i}></pre>"
        pre_tags.append((name, part[start:] + "</pre>"))
        result += part[:start] + name
    return result + last_text, pre_tags


def autop(text: str, br: bool = True) -> str:
    """Replace double line breaks with paragraph elements.

    Args:
        text: The text to upgrade.
        br: Whether remaining single line breaks become <br /> tags.

    Returns:
        Text with explicit paragraph markup.
    """
    if not text.strip():
        return ""

    text = text + "\n"
    text, pre_tags = _protect_pre_tags(text)

    # Two consecutive <br> become a paragraph break.
    text = re.sub(r"<br\s*/?>\s*<br\s*/?>", "\n\n", text)

    # Block-level tags start and end their own paragraphs.
    text = re.sub(r"(<" + _ALL_BLOCKS + r"[\s/>])", r"\n\n\1", text)
    text = re.sub(r"(</" + _ALL_BLOCKS + r">)", r"\1\n\n", text)

    text = re.sub(r"\r\n|\r", "\n", text)
    text = _replace_in_html_tags(text, "\n", _NEWLINE_PLACEHOLDER)

    if "<option" in text:
        text = re.sub(r"\s*<option", "<option", text)
        text = re.sub(r"</option>\s*", "</option>", text)

    if "</object>" in text:
        text = re.sub(r"(<object[^>]*>)\s*", r"\1", text)
        text = re.sub(r"\s*</object>", "</object>", text)
        text = re.sub(r"\s*(</?(?:param|embed)[^>]*>)\s*", r"\1", text)

    if "<source" in text or "<track" in text:
        text = re.sub(r"([<\[](?:audio|video)[^>\]]*[>\]])\s*", r"\1", text)
        text = re.sub(r"\s*([<\[]/(?:audio|video)[>\]])", r"\1", text)
        text = re.sub(r"\s*(<(?:source|track)[^>]*>)\s*", r"\1", text)

    if "<figcaption" in text:
        text = re.sub(r"\s*(<figcaption[^>]*>)", r"\1", text, count=1)
        text = re.sub(r"</figcaption>\s*", "</figcaption>", text, count=1)

    text = re.sub(r"\n\n+", "\n\n", text)

    pieces = [piece for piece in re.split(r"\n\s*\n", text) if piece]
    text = "".join(
        "<p>" + re.sub(r"^\n*|\n*$", "", piece) + "</p>\n" for piece in pieces
    )

    # Under certain strange conditions it could create a P of entirely whitespace.
    text = re.sub(r"<p>\s*</p>", "", text)
    text = re.sub(r"<p>([^<]+)</(div|address|form)>", r"<p>\1</p></\2>", text)
    text = re.sub(r"<p>\s*(</?" + _ALL_BLOCKS + r"[^>]*>)\s*</p>", r"\1", text)
    text = re.sub(r"<p>(<li.+?)</p>", r"\1", text)
    text = re.sub(r"<p><blockquote([^>]*)>", r"<blockquote\1><p>", text, flags=re.IGNORECASE)
    text = text.replace("</blockquote></p>", "</p></blockquote>")
    text = re.sub(r"<p>\s*(</?" + _ALL_BLOCKS + r"[^>]*>)", r"\1", text)
    text = re.sub(r"(</?" + _ALL_BLOCKS + r"[^>]*>)\s*</p>", r"\1", text)

    if br:
        text = re.sub(
            r"<(script|style).*?</\1>",
            lambda m: m.group(0).replace("\n", "<WPPreserveNewline />"),
            text,
            flags=re.DOTALL,
        )
        text = re.sub(r"<br>|<br/>", "<br />", text)
        text = re.sub(
            r"(<br />)?\s*\n",
            lambda m: m.group(0) if m.group(1) else "<br />\n",
            text,
        )
        text = text.replace("<WPPreserveNewline />", "\n")

    text = re.sub(r"(</?" + _ALL_BLOCKS + r"[^>]*>)\s*<br />", r"\1", text)
    text = re.sub(r"<br />(\s*</?(?:p|li|div|dl|dd|dt|th|pre|td|ul|ol)[^>]*>)", r"\1", text)
    text = re.sub(r"\n</p>$", "</p>", text)

    # A second pass splits quotes onto their own lines; keep the first form.
    text = re.sub(r"(<blockquote[^>]*>)\s*<p>", r"\1<p>", text)
    text = re.sub(r"</p>\s*</blockquote>", "</p></blockquote>", text)

    for name, original in pre_tags:
        text = text.replace(name, original, 1)

    if "<!-- wpnl -->" in text:
        text = re.sub(r"\s?<!-- wpnl -->\s?", "\n", text)

    return text
