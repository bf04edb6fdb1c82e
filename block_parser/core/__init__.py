"""Parsing pipeline stages and their intermediate representation.

WHY: Everything between document text and the validated block tree lives
here. Block libraries only touch blocks/; hosts call parser.py and read
the dataclasses in ir.py.

HOW: ir.py defines the data structures, tokenizer.py and serializer.py
move between text and raw blocks, normalizer.py and legacy.py resolve
raw blocks to registered types, attributes.py, validation.py, fixes.py
and deprecation.py compile them, and parser.py drives the recursion.
context.py bundles the collaborators a parse needs.

RULES:
- Changing an ir.py field changes the public contract
- Only ParseContext.from_config() reads block_parser.config
- No module here emits validation issues to a logger
"""
