"""Leaf walker for parsed secrets documents.

A document is the plain tree produced by the JSON/YAML parser: dicts, lists,
strings and other scalars. Only string leaves are offered to the transform.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

Transform = Callable[[str], Optional[str]]


class _Frame:
    """One container being visited, plus the replacements found beneath it."""

    __slots__ = ("container", "keys", "index", "parent_key", "replacements")

    def __init__(self, container, parent_key=None):
        self.container = container
        self.keys: List[Any] = list(container.keys()) if isinstance(container, dict) else list(range(len(container)))
        self.index = 0
        self.parent_key = parent_key
        self.replacements: Dict[Any, Any] = {}

    def rebuild(self):
        if not self.replacements:
            return self.container
        if isinstance(self.container, dict):
            return {k: self.replacements[k] if k in self.replacements else v for k, v in self.container.items()}
        return [self.replacements[i] if i in self.replacements else v for i, v in enumerate(self.container)]


def walk(node: Any, transform: Transform) -> Tuple[Any, bool]:
    """
    Apply transform to every string leaf of node.

    transform returns a replacement string, or None to keep the leaf. Subtrees
    without replacements are returned as the same objects; changed subtrees
    are rebuilt, and the input is never mutated. Uses an explicit stack, so
    nesting depth is not bounded by the interpreter recursion limit.

    Returns:
        (new_node, changed)
    """
    if isinstance(node, str):
        replacement = transform(node)
        return (node, False) if replacement is None else (replacement, True)
    if not isinstance(node, (dict, list)):
        return node, False

    stack = [_Frame(node)]
    while True:
        frame = stack[-1]
        if frame.index < len(frame.keys):
            key = frame.keys[frame.index]
            frame.index += 1
            child = frame.container[key]
            if isinstance(child, str):
                replacement = transform(child)
                if replacement is not None:
                    frame.replacements[key] = replacement
            elif isinstance(child, (dict, list)):
                stack.append(_Frame(child, parent_key=key))
            continue

        stack.pop()
        rebuilt = frame.rebuild()
        changed = bool(frame.replacements)
        if not stack:
            return rebuilt, changed
        if changed:
            stack[-1].replacements[frame.parent_key] = rebuilt
