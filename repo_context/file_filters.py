"""
File classification and tree pruning helpers.

Extension sets shared by the scorer, the neighbor expander and the local
repository walker.
"""
import posixpath
import re
from typing import Dict, Iterable, List, Optional

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".ico", ".avif", ".heic"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".webm", ".mkv", ".flv", ".wmv", ".m4v", ".mpg", ".mpeg"})
BINARY_EXTENSIONS = frozenset({".exe", ".dll", ".so", ".dylib", ".bin", ".pdf", ".zip", ".tar", ".gz", ".rar", ".7z", ".wasm"})
FONT_EXTENSIONS = frozenset({".ttf", ".otf", ".woff", ".woff2", ".eot"})

# Directories that never hold files worth showing to the model
IGNORED_DIRECTORIES = frozenset({"node_modules", ".next", "dist", "build", ".git", "coverage", ".cache"})
# Hidden names still listed in the tree
VISIBLE_DOTFILES = frozenset({".env", ".gitignore"})

MAX_FILE_SIZE = 1_000_000
MAX_IMAGE_SIZE = 500_000

# Pre-filter applied before scoring
_NOISE_RE = re.compile(r"\.(png|jpg|jpeg|gif|svg|ico|lock|pdf|zip|tar|gz|map)$", re.IGNORECASE)

# Scoring / expansion extension sets
CODE_FILE_RE = re.compile(r"\.(ts|tsx|js|jsx|py|java|go|rs|rb)$")
ROUTE_CODE_RE = re.compile(r"\.(ts|tsx|js|jsx|py)$")
NEIGHBOR_CODE_RE = ROUTE_CODE_RE
DOC_FILE_RE = re.compile(r"\.(md|txt|rst)$", re.IGNORECASE)
CONFIG_FILE_RE = re.compile(r"\.(json|yaml|yml|toml|ini|conf)$", re.IGNORECASE)

DEPENDENCY_MANIFESTS = frozenset({"package.json", "package-lock.json", "requirements.txt", "pom.xml", "cargo.toml"})
README_NAMES = frozenset({"readme.md", "readme.txt"})
ROUTE_HINTS = ("route", "api", "controller")


def basename(path: str) -> str:
    return posixpath.basename(path)


def extension(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def is_image_file(path: str) -> bool:
    return extension(path) in IMAGE_EXTENSIONS


def is_video_file(path: str) -> bool:
    return extension(path) in VIDEO_EXTENSIONS


def is_binary_file(path: str) -> bool:
    ext = extension(path)
    return ext in BINARY_EXTENSIONS or ext in FONT_EXTENSIONS


def get_file_category(path: str) -> str:
    """Coarse category name for a path, used in tree statistics."""
    ext = extension(path)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in BINARY_EXTENSIONS:
        return "binary"
    if ext in FONT_EXTENSIONS:
        return "font"
    if ext in (".js", ".jsx", ".ts", ".tsx"):
        return "javascript"
    if ext == ".py":
        return "python"
    if ext == ".java":
        return "java"
    if ext in (".css", ".scss", ".sass", ".less"):
        return "stylesheet"
    if ext in (".html", ".htm"):
        return "html"
    if ext in (".md", ".mdx"):
        return "markdown"
    if ext in (".json", ".yaml", ".yml", ".toml"):
        return "config"
    return "other"


def should_skip_file(path: str, size: Optional[int] = None) -> bool:
    """
    Decide whether a file is excluded from the repository tree.

    Args:
        path: Repository-relative path
        size: File size in bytes, if known

    Returns:
        True for oversized, video, large image, binary, lock and minified files
    """
    size = size or 0
    if size > MAX_FILE_SIZE:
        return True
    if is_video_file(path):
        return True
    if is_image_file(path) and size > MAX_IMAGE_SIZE:
        return True
    if is_binary_file(path):
        return True
    if extension(path) == ".lock" or path.endswith("package-lock.json") or path.endswith("yarn.lock"):
        return True
    if path.endswith(".min.js") or path.endswith(".min.css"):
        return True
    return False


def is_ignored_path(path: str) -> bool:
    """True when the path lives under a build/dependency/VCS directory or is a hidden artifact."""
    parts = path.split("/")
    if any(part in IGNORED_DIRECTORIES for part in parts):
        return True
    if path.endswith(".map") or path.endswith(".log"):
        return True
    return any(part.startswith(".") and part not in VISIBLE_DOTFILES for part in parts)


def prune_tree(tree: Iterable[str]) -> List[str]:
    """Drop images, locks, archives, source maps and dependency/VCS paths before scoring."""
    return [
        path for path in tree
        if not _NOISE_RE.search(path)
        and "node_modules/" not in path
        and ".git/" not in path
    ]


def tree_stats(tree: Iterable[str]) -> Dict[str, int]:
    """Count files per category."""
    stats: Dict[str, int] = {}
    for path in tree:
        category = get_file_category(path)
        stats[category] = stats.get(category, 0) + 1
    return stats
