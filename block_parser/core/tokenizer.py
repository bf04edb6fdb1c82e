"""Comment-delimiter tokenizer: document text → raw block list.

WHY: Block documents are ordinary HTML with block boundaries written as
HTML comments. The first pass only needs to find those boundaries and
split the document into nested raw blocks; it does not look inside the
HTML at all. Keeping this pass dumb keeps it fast and robust.

HOW: A single regular expression finds the next delimiter after the
current offset. Delimiters are classified as opener, closer, or void
(self-closing). Open blocks live on an explicit stack instead of the call
stack, so arbitrarily deep documents cannot overflow recursion. Text
between top-level blocks becomes freeform raw blocks (name=None).

RULES:
- Delimiter syntax: ``<!-- wp:[namespace/]name [JSON] [/]-->`` and
  ``<!-- /wp:[namespace/]name -->``
- A name without a namespace belongs to "core/"
- Malformed JSON attributes become attrs=None (normalized to {} later)
- A closer with no open block ends tokenization; the rest is freeform
- Unclosed blocks at end of input are closed at end of input
- Each block records its exact delimiter text for byte-faithful rebuilds
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from block_parser.core.ir import RawBlock

_TOKENIZER_RE = re.compile(
    r"<!--\s+(?P<closer>/)?wp:(?P<namespace>[a-z][a-z0-9_-]*/)?(?P<name>[a-z][a-z0-9_-]*)\s+"
    r"(?P<attrs>\{.*?\}\s+)?(?P<void>/)?-->",
    re.DOTALL,
)

_DEFAULT_NAMESPACE = "core/"


@dataclass
class _Token:
    kind: str  # "no-more-tokens", "void-block", "block-opener", "block-closer"
    name: str | None = None
    attrs: dict[str, Any] | None = None
    start: int = 0
    length: int = 0
    text: str = ""


@dataclass
class _Frame:
    """An open block waiting for its closer."""

    block: RawBlock
    token_start: int
    token_length: int
    prev_offset: int
    leading_html_start: int | None


def _parse_json(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _freeform(html: str) -> RawBlock:
    return RawBlock(
        name=None,
        attrs={},
        inner_html=html,
        inner_content=[html],
        inner_blocks=[],
    )


class _Tokenizer:
    """Single-use scanner state for one document."""

    def __init__(self, document: str) -> None:
        self.document = document
        self.offset = 0
        self.output: list[RawBlock] = []
        self.stack: list[_Frame] = []

    def run(self) -> list[RawBlock]:
        while self._proceed():
            pass
        return self.output

    def _next_token(self) -> _Token:
        match = _TOKENIZER_RE.search(self.document, self.offset)
        if match is None:
            return _Token(kind="no-more-tokens")

        name = (match.group("namespace") or _DEFAULT_NAMESPACE) + match.group("name")
        attrs_text = match.group("attrs")
        attrs = _parse_json(attrs_text) if attrs_text else {}

        if match.group("void"):
            kind = "void-block"
        elif match.group("closer"):
            kind = "block-closer"
        else:
            kind = "block-opener"

        return _Token(
            kind=kind,
            name=name,
            attrs=attrs,
            start=match.start(),
            length=match.end() - match.start(),
            text=match.group(0),
        )

    def _proceed(self) -> bool:
        token = self._next_token()
        stack_depth = len(self.stack)
        leading_html_start = self.offset if token.start > self.offset else None

        if token.kind == "no-more-tokens":
            if stack_depth == 0:
                self._add_freeform()
                return False
            # Unclosed blocks: close each at end of input, innermost first.
            while len(self.stack) > 1:
                frame = self.stack.pop()
                self._close_frame(frame, len(self.document))
                self._add_inner_block(frame.block, frame.token_start, frame.token_length, len(self.document))
            self._add_block_from_stack()
            return False

        if token.kind == "void-block":
            block = RawBlock(
                name=token.name,
                attrs=token.attrs,
                delimiters=(token.text, ""),
            )
            if stack_depth == 0:
                if leading_html_start is not None:
                    self.output.append(_freeform(self.document[self.offset:token.start]))
                self.output.append(block)
            else:
                self._add_inner_block(block, token.start, token.length)
            self.offset = token.start + token.length
            return True

        if token.kind == "block-opener":
            self.stack.append(_Frame(
                block=RawBlock(
                    name=token.name,
                    attrs=token.attrs,
                    delimiters=(token.text, ""),
                ),
                token_start=token.start,
                token_length=token.length,
                prev_offset=token.start + token.length,
                leading_html_start=leading_html_start,
            ))
            self.offset = token.start + token.length
            return True

        # block-closer
        if stack_depth == 0:
            # Closer without an opener: keep everything left as freeform.
            self._add_freeform()
            return False

        frame = self.stack[-1]
        frame.block.delimiters = (frame.block.delimiters[0], token.text)
        if stack_depth == 1:
            self._add_block_from_stack(token.start)
            self.offset = token.start + token.length
            return True

        self.stack.pop()
        self._close_frame(frame, token.start)
        self._add_inner_block(
            frame.block, frame.token_start, frame.token_length, token.start + token.length
        )
        self.offset = token.start + token.length
        return True

    def _add_freeform(self) -> None:
        if self.offset >= len(self.document):
            return
        self.output.append(_freeform(self.document[self.offset:]))

    def _close_frame(self, frame: _Frame, end_offset: int) -> None:
        html = self.document[frame.prev_offset:end_offset]
        if html:
            frame.block.inner_html += html
            frame.block.inner_content.append(html)
        frame.prev_offset = end_offset

    def _add_inner_block(
        self,
        block: RawBlock,
        token_start: int,
        token_length: int,
        last_offset: int | None = None,
    ) -> None:
        parent = self.stack[-1]
        parent.block.inner_blocks.append(block)
        html = self.document[parent.prev_offset:token_start]
        if html:
            parent.block.inner_html += html
            parent.block.inner_content.append(html)
        parent.block.inner_content.append(None)
        parent.prev_offset = last_offset if last_offset is not None else token_start + token_length

    def _add_block_from_stack(self, end_offset: int | None = None) -> None:
        frame = self.stack.pop()
        self._close_frame(frame, len(self.document) if end_offset is None else end_offset)
        if frame.leading_html_start is not None:
            self.output.append(_freeform(
                self.document[frame.leading_html_start:frame.token_start]
            ))
        self.output.append(frame.block)


def tokenize(document: str) -> list[RawBlock]:
    """Split a block document into top-level raw blocks.

    WHY: Everything downstream works on raw blocks; this is the only place
    that reads delimiter syntax.

    HOW: Runs the stack-based scanner described in the module docstring.

    Args:
        document: Full document text.

    Returns:
        Top-level raw blocks (freeform spans included) in document order.
    """
    return _Tokenizer(document).run()
