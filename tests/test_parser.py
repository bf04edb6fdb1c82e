"""End-to-end tests for parse_document().

WHY: The pipeline stages are individually tested, but their order is
where the subtle bugs live: children must be final before the parent is
validated, legacy renames must happen before lookup, and unknown blocks
must survive intact.

HOW: Parse complete documents with the conftest block library and check
the resulting tree.

RULES:
- Unknown blocks round-trip their exact source text
- Dropped children leave their siblings in order
"""

import logging

import pytest

from block_parser.core.context import ParseContext
from block_parser.core.ir import RawBlock
from block_parser.core.legacy import DEFAULT_LEGACY_RULES, LegacyRule
from block_parser.core.parser import (
    NestingTooDeepError,
    log_validation_issues,
    measure_nesting_depth,
    parse_document,
    parse_raw_block,
)


class TestParseDocument:
    """Whole-document scenarios."""

    def test_valid_paragraph(self, context):
        blocks = parse_document("<!-- wp:paragraph --><p>Hello</p><!-- /wp:paragraph -->", context)
        assert len(blocks) == 1
        assert blocks[0].name == "core/paragraph"
        assert blocks[0].attributes == {"content": "Hello", "align": None, "className": None}
        assert blocks[0].original_content == "<p>Hello</p>"
        assert blocks[0].is_valid

    def test_legacy_renamed_quote(self, registry):
        ctx = ParseContext(
            registry=registry,
            legacy_rules=DEFAULT_LEGACY_RULES + (LegacyRule("old-quote", "core/quote"),),
        )
        document = (
            '<!-- wp:old-quote {"value":"<p>Hi</p>"} -->'
            "<blockquote><p>Hi</p></blockquote>"
            "<!-- /wp:old-quote -->"
        )
        blocks = parse_document(document, ctx)
        assert blocks[0].name == "core/quote"
        assert blocks[0].attributes == {"value": "<p>Hi</p>", "citation": ""}
        assert blocks[0].inner_blocks == []
        assert blocks[0].is_valid

    def test_unregistered_block_preserved(self, context):
        source = "<!-- wp:plugin/gizmo --><div>X</div><!-- /wp:plugin/gizmo -->"
        blocks = parse_document(source, context)
        assert blocks[0].name == "core/missing"
        assert blocks[0].attributes["originalName"] == "plugin/gizmo"
        assert blocks[0].attributes["originalContent"] == source
        assert blocks[0].attributes["originalUndelimitedContent"] == "<div>X</div>"
        assert blocks[0].is_valid

    def test_code_built_unregistered_block_keeps_markup(self, context):
        block = parse_raw_block(RawBlock(name="plugin/gizmo", inner_html="<div>X</div>"), context)
        assert block.name == "core/missing"
        assert block.attributes["originalContent"] == (
            "<!-- wp:plugin/gizmo -->\n<div>X</div>\n<!-- /wp:plugin/gizmo -->"
        )
        assert block.attributes["originalUndelimitedContent"] == "<div>X</div>"

    def test_unregistered_legacy_block_keeps_written_name(self, registry):
        ctx = ParseContext(
            registry=registry,
            legacy_rules=DEFAULT_LEGACY_RULES + (LegacyRule("old-gizmo", "plugin/gizmo"),),
        )
        source = "<!-- wp:old-gizmo --><div>X</div><!-- /wp:old-gizmo -->"
        blocks = parse_document(source, ctx)
        assert blocks[0].name == "core/missing"
        assert blocks[0].attributes["originalName"] == "core/old-gizmo"
        assert blocks[0].attributes["originalContent"] == source
        assert blocks[0].is_valid

    def test_freeform_text_upgraded(self, context):
        blocks = parse_document("Hello\n\nWorld", context)
        assert blocks[0].name == "core/freeform"
        assert blocks[0].attributes == {"content": "<p>Hello</p>\n<p>World</p>"}

    def test_whitespace_between_blocks_dropped(self, context):
        document = (
            "<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph -->\n\n"
            "<!-- wp:paragraph --><p>b</p><!-- /wp:paragraph -->"
        )
        blocks = parse_document(document, context)
        assert [block.attributes["content"] for block in blocks] == ["a", "b"]

    def test_custom_class_recovered(self, context):
        blocks = parse_document(
            '<!-- wp:paragraph --><p class="fancy">Hi</p><!-- /wp:paragraph -->', context
        )
        assert blocks[0].attributes["className"] == "fancy"
        assert blocks[0].is_valid

    def test_invalid_block_kept_with_issues(self, context):
        blocks = parse_document(
            '<!-- wp:paragraph {"align":"center"} --><p>Hi</p><!-- /wp:paragraph -->', context
        )
        assert not blocks[0].is_valid
        assert blocks[0].attributes["align"] == "center"
        assert blocks[0].validation_issues

    def test_deprecated_quote_migrated(self, context):
        document = (
            "<!-- wp:quote --><blockquote><p>Hi</p><footer>Me</footer></blockquote><!-- /wp:quote -->"
        )
        blocks = parse_document(document, context)
        assert blocks[0].is_valid
        assert blocks[0].attributes == {"value": "<p>Hi</p>", "citation": "Me"}

    def test_nested_children_parsed_bottom_up(self, context):
        document = (
            '<!-- wp:group --><div class="wp-block-group">'
            "<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph -->"
            "<!-- wp:freeform --><!-- /wp:freeform -->"
            "<!-- wp:paragraph --><p>c</p><!-- /wp:paragraph -->"
            "</div><!-- /wp:group -->"
        )
        blocks = parse_document(document, context)
        group = blocks[0]
        assert group.is_valid
        assert [child.attributes["content"] for child in group.inner_blocks] == ["a", "c"]

    def test_unknown_child_inside_known_parent(self, context):
        document = (
            '<!-- wp:group --><div class="wp-block-group">'
            "<!-- wp:plugin/gizmo --><div>X</div><!-- /wp:plugin/gizmo -->"
            "</div><!-- /wp:group -->"
        )
        child = parse_document(document, context)[0].inner_blocks[0]
        assert child.name == "core/missing"
        assert child.attributes["originalContent"] == (
            "<!-- wp:plugin/gizmo --><div>X</div><!-- /wp:plugin/gizmo -->"
        )

    def test_default_context_has_no_block_types(self):
        assert parse_document("<!-- wp:paragraph --><p>x</p><!-- /wp:paragraph -->") == []

    def test_deterministic(self, context):
        document = (
            "intro\n\n"
            '<!-- wp:paragraph {"align":"left"} --><p>x</p><!-- /wp:paragraph -->'
            "<!-- wp:plugin/gizmo /-->"
        )
        assert parse_document(document, context) == parse_document(document, context)


class TestFallbackConfiguration:
    """Handler names switched off."""

    def test_no_handlers_drops_unknown_block(self, registry, caplog):
        ctx = ParseContext(registry=registry, unregistered_handler_name=None, freeform_handler_name=None)
        with caplog.at_level(logging.WARNING, logger="block_parser.core.parser"):
            blocks = parse_document("<!-- wp:plugin/gizmo --><div>X</div><!-- /wp:plugin/gizmo -->", ctx)
        assert blocks == []
        assert "plugin/gizmo" in caplog.text

    def test_unknown_block_uses_freeform_when_no_unregistered_handler(self, registry):
        ctx = ParseContext(registry=registry, unregistered_handler_name=None)
        blocks = parse_document("<!-- wp:plugin/gizmo --><div>X</div><!-- /wp:plugin/gizmo -->", ctx)
        assert blocks[0].name == "core/freeform"
        assert blocks[0].is_valid


class TestNestingLimit:
    """Depth checks before parsing."""

    def test_measure_nesting_depth(self):
        tree = RawBlock(name="core/group", inner_blocks=[
            RawBlock(name="core/group", inner_blocks=[RawBlock(name="core/paragraph")]),
            RawBlock(name="core/paragraph"),
        ])
        assert measure_nesting_depth([tree]) == 3
        assert measure_nesting_depth([]) == 0

    def test_too_deep_document_rejected(self, registry):
        ctx = ParseContext(registry=registry, max_depth=3)
        document = "<!-- wp:group -->" * 4 + "<!-- /wp:group -->" * 4
        with pytest.raises(NestingTooDeepError) as exc_info:
            parse_document(document, ctx)
        assert exc_info.value.depth == 4
        assert exc_info.value.max_depth == 3

    def test_depth_at_limit_accepted(self, registry):
        ctx = ParseContext(registry=registry, max_depth=3)
        document = (
            '<!-- wp:group --><div class="wp-block-group">' * 3
            + "</div><!-- /wp:group -->" * 3
        )
        assert len(parse_document(document, ctx)) == 1

    def test_parse_raw_block_checks_depth(self, registry):
        ctx = ParseContext(registry=registry, max_depth=1)
        raw = RawBlock(name="core/group", inner_blocks=[RawBlock(name="core/group")])
        with pytest.raises(NestingTooDeepError):
            parse_raw_block(raw, ctx)


class TestLogValidationIssues:
    """Deferred issues are emitted on request only."""

    def test_parse_logs_nothing_above_debug(self, context, caplog):
        with caplog.at_level(logging.INFO):
            parse_document('<!-- wp:paragraph {"align":"center"} --><p>Hi</p><!-- /wp:paragraph -->', context)
        assert caplog.records == []

    def test_issues_emitted_to_host_logger(self, context, caplog):
        blocks = parse_document(
            '<!-- wp:paragraph {"align":"center"} --><p>Hi</p><!-- /wp:paragraph -->', context
        )
        host_logger = logging.getLogger("host.editor")
        with caplog.at_level(logging.WARNING, logger="host.editor"):
            emitted = log_validation_issues(blocks, host_logger)
        assert emitted == len(blocks[0].validation_issues)
        assert any(record.levelno == logging.ERROR for record in caplog.records)

    def test_valid_blocks_emit_nothing(self, context):
        blocks = parse_document("<!-- wp:paragraph --><p>ok</p><!-- /wp:paragraph -->", context)
        assert log_validation_issues(blocks, logging.getLogger("host.editor")) == 0
