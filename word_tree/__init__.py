from typing import Any

from .builder import BlockItem, TreeBuilder, build_tree
from .errors import NodeOwnershipError, RunSplitError, WordTreeError
from .node import DocumentNode, NodeKind
from .runs import FormattedRun, RunFormatting


def parse_docx(*args: Any, **kwargs: Any):
    from .parser.document_parser import parse_docx as _parse_docx

    return _parse_docx(*args, **kwargs)


def render_tree(*args: Any, **kwargs: Any):
    from .renderer.document_renderer import render_tree as _render_tree

    return _render_tree(*args, **kwargs)


__all__ = [
    "BlockItem",
    "DocumentNode",
    "FormattedRun",
    "NodeKind",
    "NodeOwnershipError",
    "RunFormatting",
    "RunSplitError",
    "TreeBuilder",
    "WordTreeError",
    "build_tree",
    "parse_docx",
    "render_tree",
]
