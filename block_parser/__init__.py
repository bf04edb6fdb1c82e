"""Block document parser: typed, validated trees from block-delimited HTML.

WHY: Content authored in a block editor is stored as HTML interleaved with
comment delimiters (``<!-- wp:core/quote --> ... <!-- /wp:core/quote -->``).
Editors need a typed tree with schema-derived attributes, and they must keep
working when block types are missing, renamed, or have evolved over time.

HOW: Three-stage pipeline: tokenize (comment delimiters → raw blocks),
resolve (normalize, rename legacy blocks, wrap unknown types), and compile
(extract attributes, validate against the type's ``save`` output, apply
built-in fixes and deprecation migrations). Each stage is independently
testable.

RULES:
- Parsing raises only NestingTooDeepError and never drops content,
  except empty fallback fragments and unknown blocks with no handler
- All configuration travels in an explicit ParseContext, never globals
- Validation problems are returned as deferred issues, never logged
"""

__version__ = "0.1.0"
