"""Tree-Sitter Parsing Layer — the C front-end boundary."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from tree_sitter import Tree

from .tokens import TokenIndex, decode_source, tokenize_tree
from . import constants

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack."""

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        return tslp.get_parser(language)


@dataclass(frozen=True)
class TranslationUnit:
    """One parsed C file: the raw bytes, the node tree and its token stream."""

    source: bytes
    tree: Tree
    tokens: TokenIndex

    @property
    def root(self):
        return self.tree.root_node

    def text(self, node) -> str:
        return decode_source(self.source[node.start_byte : node.end_byte])


class CParser:
    """Parses C source into a TranslationUnit."""

    def __init__(self, parser_factory: ParserFactory | None = None):
        self._factory = parser_factory or TreeSitterParserFactory()

    def parse(self, source: str | bytes) -> TranslationUnit:
        if isinstance(source, str):
            source_bytes = source.encode(constants.SOURCE_ENCODING, constants.SOURCE_ERRORS)
        else:
            source_bytes = source
        parser = self._factory.get_parser(constants.LANGUAGE)
        tree = parser.parse(source_bytes)
        if tree.root_node.has_error:
            logger.warning("Syntax errors in input; converting best-effort")
        tokens = tokenize_tree(tree, source_bytes)
        logger.info(
            "Parsed %d bytes into %d tokens", len(source_bytes), len(tokens)
        )
        return TranslationUnit(source=source_bytes, tree=tree, tokens=tokens)
