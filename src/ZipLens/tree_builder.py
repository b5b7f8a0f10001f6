"""Directory tree building and ASCII rendering for archive listings."""

from __future__ import annotations

from typing import Iterable, Iterator

from ZipLens.models import Directory, Leaf


class InvalidPathError(ValueError):
    """Raised when a path contains an empty segment."""


def split_path(path: str) -> list[str]:
    """Split a slash-delimited path, rejecting empty segments.

    ``"a//b"``, ``"/a"``, ``"a/"`` and ``""`` all raise InvalidPathError.
    """
    parts = path.split("/")
    if any(not part for part in parts):
        raise InvalidPathError(f"Path has an empty segment: {path!r}")
    return parts


def build_tree(paths: Iterable[str]) -> Directory:
    """Build a nested Directory from slash-delimited paths.

    A segment that ever gains a child is a directory, whichever order the
    paths arrive in:

        build_tree(["a", "a/b"]) == build_tree(["a/b", "a"])
        # -> Directory({"a": Directory({"b": Leaf()})})
    """
    root = Directory()
    for path in paths:
        parts = split_path(path)
        node = root
        for part in parts[:-1]:
            child = node.children.get(part)
            if not isinstance(child, Directory):
                # Unseen, or a leaf that turns out to be a directory
                child = Directory()
                node.children[part] = child
            node = child

        last = parts[-1]
        if last not in node.children:
            node.children[last] = Leaf()
    return root


def iter_leaf_paths(root: Directory, prefix: str = "") -> Iterator[str]:
    """Yield the full path of every leaf, in insertion order."""
    for name, child in root.children.items():
        full = f"{prefix}{name}"
        if isinstance(child, Directory):
            yield from iter_leaf_paths(child, f"{full}/")
        else:
            yield full


def tree_depth(root: Directory) -> int:
    """Return the segment count of the longest root-to-leaf path."""
    depth = 0
    for child in root.children.values():
        if isinstance(child, Directory):
            depth = max(depth, 1 + tree_depth(child))
        else:
            depth = max(depth, 1)
    return depth


def render_tree(root: Directory) -> str:
    """Render a Directory as an ASCII tree.

    Example output:
        ├── docs/
        │   ├── guide.md
        │   └── api.md
        └── README.md
    """
    lines: list[str] = []
    _render_tree(root, lines, prefix="")
    return "\n".join(lines)


def _render_tree(
    tree: Directory,
    lines: list[str],
    prefix: str,
) -> None:
    """Recursively render the tree into lines."""
    entries = list(tree.children.items())
    for i, (name, child) in enumerate(entries):
        is_last = i == len(entries) - 1
        connector = "└── " if is_last else "├── "

        if isinstance(child, Directory):
            lines.append(f"{prefix}{connector}{name}/")
            extension = "    " if is_last else "│   "
            _render_tree(child, lines, prefix + extension)
        else:
            lines.append(f"{prefix}{connector}{name}")
