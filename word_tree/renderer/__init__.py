from typing import Any


def render_tree(*args: Any, **kwargs: Any):
    from .document_renderer import render_tree as _render_tree

    return _render_tree(*args, **kwargs)


__all__ = ["render_tree"]
