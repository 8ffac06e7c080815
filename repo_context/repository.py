"""
Repository collaborators: file tree listing and file content retrieval.

LocalRepository reads a checkout on local disk (cloning it is somebody else's job);
InMemoryRepository serves a dict of path -> text. CachedContentReader puts the
content cache in front of either.
"""
import hashlib
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from .cache import CacheService
from .errors import RepositoryNotFoundError
from .file_filters import is_ignored_path, should_skip_file

logger = logging.getLogger(__name__)


class Repository(ABC):
    """Abstract base class for repository snapshots."""

    @abstractmethod
    def file_tree(self) -> List[str]:
        """
        List repository files.

        Returns:
            Unique forward-slash relative paths, in a stable order
        """
        pass

    @abstractmethod
    def read(self, path: str) -> Optional[str]:
        """Return file text, or None when the file is absent or unreadable."""
        pass

    @abstractmethod
    def content_hash(self, path: str) -> Optional[str]:
        """Hash identifying the current content of a file (None if absent)."""
        pass


class InMemoryRepository(Repository):
    """Repository backed by a path -> content mapping."""

    def __init__(self, files: Dict[str, str]):
        self.files = dict(files)

    def file_tree(self) -> List[str]:
        return list(self.files)

    def read(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def content_hash(self, path: str) -> Optional[str]:
        content = self.files.get(path)
        if content is None:
            return None
        return hashlib.sha1(content.encode("utf-8")).hexdigest()


class LocalRepository(Repository):
    """Checkout on local disk."""

    def __init__(self, root: str):
        """
        Initialize with the checkout directory.

        Args:
            root: Path to the repository working tree

        Raises:
            RepositoryNotFoundError: if root is not a directory
        """
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise RepositoryNotFoundError(str(root))
        self.hidden_files: List[Dict[str, str]] = []

    @classmethod
    def from_namespace(cls, repos_dir: str, owner: str, repo: str) -> "LocalRepository":
        """Open ``<repos_dir>/<owner>/<repo>``."""
        return cls(os.path.join(repos_dir, owner, repo))

    def file_tree(self) -> List[str]:
        """
        Walk the checkout and list files worth showing to a model.

        Hidden entries, build/dependency directories, source maps, logs and files
        rejected by should_skip_file() are left out; the ones hidden for a reason
        are recorded in ``hidden_files``.
        """
        tree: List[str] = []
        self.hidden_files = []

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._log_walk_error):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir

            kept_dirs = []
            for name in sorted(dirnames):
                rel = f"{rel_dir}/{name}" if rel_dir else name
                if is_ignored_path(rel):
                    self.hidden_files.append({"path": rel, "reason": "Build/dependency or hidden directory"})
                else:
                    kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for name in sorted(filenames):
                rel = f"{rel_dir}/{name}" if rel_dir else name
                if is_ignored_path(rel):
                    self.hidden_files.append({"path": rel, "reason": "Build artifact or hidden file"})
                    continue
                try:
                    size = (Path(dirpath) / name).stat().st_size
                except OSError as e:
                    logger.warning(f"Skipping {rel}: {e}")
                    continue
                if should_skip_file(rel, size):
                    self.hidden_files.append({"path": rel, "reason": "Binary, media, lock or oversized file"})
                    continue
                tree.append(rel)

        logger.info(f"Listed {len(tree)} files under {self.root} ({len(self.hidden_files)} hidden)")
        return tree

    def _log_walk_error(self, error: OSError):
        logger.warning(f"Could not read directory {error.filename}: {error}")

    def _resolve(self, path: str) -> Optional[Path]:
        full = (self.root / path).resolve()
        if full != self.root and self.root not in full.parents:
            logger.warning(f"Refusing to read outside repository: {path}")
            return None
        return full

    def read(self, path: str) -> Optional[str]:
        full = self._resolve(path)
        if full is None:
            return None
        try:
            return full.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def content_hash(self, path: str) -> Optional[str]:
        """Fingerprint from size and mtime; any write to the file changes it."""
        full = self._resolve(path)
        if full is None:
            return None
        try:
            stat = full.stat()
        except OSError as e:
            logger.warning(f"Failed to stat {path}: {e}")
            return None
        if not full.is_file():
            return None
        fingerprint = f"{path}:{stat.st_size}:{stat.st_mtime_ns}"
        return hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()

    def readme(self) -> Optional[str]:
        """Content of the first README variant present at the root."""
        for name in ("README.md", "README.txt", "README", "readme.md", "Readme.md"):
            if (self.root / name).is_file():
                return self.read(name)
        return None


class CachedContentReader:
    """
    Content retrieval through the content cache.

    Keys include the file's content hash, so an edited file misses the cache
    and is re-read.
    """

    def __init__(self, repository: Repository, caches: CacheService, namespace: str):
        self.repository = repository
        self.caches = caches
        self.namespace = namespace

    def __call__(self, path: str) -> Optional[str]:
        return self.read(path)

    def read(self, path: str) -> Optional[str]:
        content_hash = self.repository.content_hash(path)
        if content_hash is None:
            return None

        cached = self.caches.load_content(self.namespace, path, content_hash)
        if cached is not None:
            return cached

        content = self.repository.read(path)
        if content is not None:
            self.caches.store_content(self.namespace, path, content_hash, content)
        return content
