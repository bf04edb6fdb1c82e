"""Unit tests for deprecated-version matching and migration.

WHY: Blocks written by an older version of a block type must keep
loading. Migration order and the shape of migrate results decide what
attributes an upgraded block ends up with.

HOW: Parse small documents through parse_document() so the deprecated
versions see exactly the raw block and original content the pipeline
produces, with block types registered per test.

RULES:
- Versions are tried in registration order; the first match wins
- Eligibility alone never turns invalid markup valid
- Migration also runs for blocks that already validate
"""

from typing import Any, Dict, List

from block_parser.blocks import BlockTypeRegistry
from block_parser.blocks.base import BlockType, DeprecatedBlockType
from block_parser.core.context import ParseContext
from block_parser.core.deprecation import apply_block_deprecated_versions
from block_parser.core.ir import Block, RawBlock
from block_parser.core.parser import parse_document


def _save_notice(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    return f'<div class="notice notice-{attributes.get("tone")}">{attributes.get("text") or ""}</div>'


def _save_notice_v1(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    return f'<div class="notice">{attributes.get("text") or ""}</div>'


def _save_notice_v0(attributes: Dict[str, Any], inner_blocks: List[Any]) -> str:
    return f'<p class="notice">{attributes.get("text") or ""}</p>'


_TEXT = {"type": "string", "source": "html", "selector": ".notice", "default": ""}


def _notice_type(deprecated):
    return BlockType(
        name="test/notice",
        title="Notice",
        save=_save_notice,
        attributes={"text": _TEXT, "tone": {"type": "string", "default": "info"}},
        supports={"customClassName": False},
        deprecated=deprecated,
    )


def _parse(block_type, document):
    ctx = ParseContext(registry=BlockTypeRegistry([block_type]))
    return parse_document(document, ctx)


class TestMatching:
    """Which deprecated version is chosen."""

    def test_old_markup_migrated_by_validation(self):
        v1 = DeprecatedBlockType(save=_save_notice_v1, attributes={"text": _TEXT})
        blocks = _parse(
            _notice_type([v1]),
            '<!-- wp:test/notice --><div class="notice">Hi</div><!-- /wp:test/notice -->',
        )
        assert blocks[0].is_valid
        assert blocks[0].validation_issues == []
        assert blocks[0].attributes == {"text": "Hi"}

    def test_first_matching_version_wins(self):
        calls = []

        def migrate_v1(attributes, inner_blocks):
            calls.append("v1")
            return {**attributes, "tone": "v1"}

        def migrate_v0(attributes, inner_blocks):
            calls.append("v0")
            return {**attributes, "tone": "v0"}

        block_type = _notice_type([
            DeprecatedBlockType(save=_save_notice_v0, attributes={"text": _TEXT}, migrate=migrate_v0),
            DeprecatedBlockType(save=_save_notice_v1, attributes={"text": _TEXT}, migrate=migrate_v1),
        ])
        blocks = _parse(
            block_type,
            '<!-- wp:test/notice --><div class="notice">Hi</div><!-- /wp:test/notice -->',
        )
        assert calls == ["v1"]
        assert blocks[0].attributes == {"text": "Hi", "tone": "v1"}

    def test_no_match_leaves_block_invalid(self):
        v1 = DeprecatedBlockType(save=_save_notice_v1, attributes={"text": _TEXT})
        blocks = _parse(
            _notice_type([v1]),
            '<!-- wp:test/notice --><span class="notice">Hi</span><!-- /wp:test/notice -->',
        )
        assert not blocks[0].is_valid
        assert blocks[0].validation_issues[-1].level == "error"

    def test_is_eligible_skips_validation(self):
        def migrate(attributes, inner_blocks):
            return {"text": attributes["text"].upper(), "tone": "warning"}

        eligible = DeprecatedBlockType(
            save=_save_notice_v0,
            attributes={"text": _TEXT},
            is_eligible=lambda attributes, inner_blocks: True,
            migrate=migrate,
        )
        blocks = _parse(
            _notice_type([eligible]),
            '<!-- wp:test/notice --><div class="notice notice-info">Hi</div><!-- /wp:test/notice -->',
        )
        assert blocks[0].attributes == {"text": "HI", "tone": "warning"}
        assert blocks[0].is_valid

    def test_eligible_version_keeps_invalid_verdict(self):
        calls = []

        def migrate(attributes, inner_blocks):
            calls.append("eligible")
            return {**attributes, "tone": "migrated"}

        eligible = DeprecatedBlockType(
            save=_save_notice_v1,
            attributes={"text": _TEXT},
            is_eligible=lambda attributes, inner_blocks: True,
            migrate=migrate,
        )
        blocks = _parse(
            _notice_type([eligible]),
            "<!-- wp:test/notice --><section>corrupted</section><!-- /wp:test/notice -->",
        )
        assert calls == ["eligible"]
        assert blocks[0].attributes["tone"] == "migrated"
        assert not blocks[0].is_valid
        assert blocks[0].validation_issues

    def test_only_first_of_several_matching_versions_migrates(self):
        calls = []

        def make_migrate(version):
            def migrate(attributes, inner_blocks):
                calls.append(version)
                return {**attributes, "tone": version}
            return migrate

        block_type = _notice_type([
            DeprecatedBlockType(save=_save_notice_v1, attributes={"text": _TEXT}, migrate=make_migrate("first")),
            DeprecatedBlockType(save=_save_notice_v1, attributes={"text": _TEXT}, migrate=make_migrate("second")),
        ])
        blocks = _parse(
            block_type,
            '<!-- wp:test/notice --><div class="notice">Hi</div><!-- /wp:test/notice -->',
        )
        assert calls == ["first"]
        assert blocks[0].attributes == {"text": "Hi", "tone": "first"}
        assert blocks[0].is_valid


class TestMigration:
    """Migrate hook results."""

    def test_migration_runs_for_valid_block(self):
        def migrate(attributes, inner_blocks):
            return {**attributes, "tone": "migrated"}

        # Same save as the current version: every current block matches.
        v1 = DeprecatedBlockType(
            save=_save_notice,
            attributes={"text": _TEXT, "tone": {"type": "string", "default": "info"}},
            migrate=migrate,
        )
        blocks = _parse(
            _notice_type([v1]),
            '<!-- wp:test/notice --><div class="notice notice-info">Hi</div><!-- /wp:test/notice -->',
        )
        assert blocks[0].attributes == {"text": "Hi", "tone": "migrated"}

    def test_pair_result_replaces_inner_blocks(self, context, registry):
        extra = Block(name="core/paragraph", attributes={"content": "new"}, is_valid=True)

        def migrate(attributes, inner_blocks):
            return attributes, inner_blocks + [extra]

        block_type = BlockType(
            name="core/group",
            save=registry.get("core/group").save,
            attributes={"tagName": {"type": "string", "default": "div"}},
            deprecated=[DeprecatedBlockType(
                save=registry.get("core/group").save,
                attributes={"tagName": {"type": "string", "default": "div"}},
                migrate=migrate,
            )],
        )
        block = Block(
            name="core/group",
            attributes={"tagName": "div"},
            original_content='<div class="wp-block-group"></div>',
            is_valid=True,
        )
        raw = RawBlock(name="core/group", attrs={})
        migrated = apply_block_deprecated_versions(block, raw, block_type, context)
        assert migrated.inner_blocks == [extra]
        assert block.inner_blocks == []

    def test_migrate_receives_copies(self, context, registry):
        seen = {}

        def migrate(attributes, inner_blocks):
            attributes["mutated"] = True
            seen["attributes"] = attributes
            return attributes

        group = registry.get("core/group")
        block_type = BlockType(
            name="core/group",
            save=group.save,
            attributes=group.attributes,
            deprecated=[DeprecatedBlockType(save=group.save, attributes=group.attributes, migrate=migrate)],
        )
        block = Block(
            name="core/group",
            attributes={"tagName": "div"},
            original_content='<div class="wp-block-group"></div>',
        )
        apply_block_deprecated_versions(block, RawBlock(name="core/group", attrs={}), block_type, context)
        assert "mutated" not in block.attributes
        assert seen["attributes"]["mutated"] is True
