"""
Neighbor expansion of a scored selection.

Files rarely make sense alone: pull in a few siblings from the same directory and,
for nested files, a couple of code files from the grandparent directory.
"""
from typing import Dict, List, Sequence
from .file_filters import NEIGHBOR_CODE_RE, basename

MAX_SIBLINGS = 3
MAX_PARENT_FILES = 2
MAX_SELECTION = 30

IMPORTANT_FILES = ("README.md", "package.json", "tsconfig.json", "requirements.txt")


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def expand_with_neighbors(selected: Sequence[str], tree: Sequence[str]) -> List[str]:
    """
    Expand a selection with sibling and parent-directory files.

    Args:
        selected: Seed paths (scorer output after threshold/cap)
        tree: Full file tree

    Returns:
        Seeds first, then added neighbors in insertion order; no duplicates
    """
    expanded: Dict[str, None] = dict.fromkeys(selected)

    for path in selected:
        directory = _parent(path)
        if directory:
            prefix = directory + "/"
            siblings = [f for f in tree if f.startswith(prefix) and f != path and f not in expanded]
            for sibling in siblings[:MAX_SIBLINGS]:
                expanded[sibling] = None

        parts = path.split("/")
        if len(parts) > 2:
            prefix = "/".join(parts[:-2]) + "/"
            parent_files = [
                f for f in tree
                if f.startswith(prefix) and f != path and f not in expanded and NEIGHBOR_CODE_RE.search(f)
            ]
            for parent_file in parent_files[:MAX_PARENT_FILES]:
                expanded[parent_file] = None

    return list(expanded)


def find_important_files(tree: Sequence[str], names: Sequence[str] = IMPORTANT_FILES) -> List[str]:
    """First path in the tree for each "always useful" file name."""
    found = []
    for name in names:
        for path in tree:
            if basename(path) == name:
                found.append(path)
                break
    return found


def with_important_files(
    files: Sequence[str],
    tree: Sequence[str],
    limit: int = MAX_SELECTION,
) -> List[str]:
    """Append missing README/manifest files and cap the selection."""
    result = list(files)
    for path in find_important_files(tree):
        if path not in result:
            result.append(path)
    return result[:limit]


def fallback_selection(tree: Sequence[str], limit: int = MAX_SELECTION) -> List[str]:
    """Default selection used when nothing scores above the threshold."""
    return find_important_files(tree)[:limit]
