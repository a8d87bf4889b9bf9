"""Directory factory threading the cache root through the engine."""

import logging
import tempfile
from pathlib import Path

from repomigrate.exceptions import InfraError

logger = logging.getLogger(__name__)


class DirectoryFactory:
    """
    Hands out directories under a single root.

    The factory is created before the first run and outlives every run;
    components receive it explicitly instead of reading a global.

    Layout:
        <root>/cache/<name>/   long-lived caches (e.g. ``git_repos``)
        <root>/tmp/            short-lived scratch directories

    Example:
        >>> factory = DirectoryFactory(Path.home() / ".cache" / "repomigrate")
        >>> repos = factory.get_cache_dir("git_repos")
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def get_cache_dir(self, name: str) -> Path:
        """
        Get (creating it if needed) a named cache directory.

        Raises:
            InfraError: If the directory cannot be created
        """
        return self._ensure(self._root / "cache" / name)

    def new_temp_dir(self, prefix: str = "tmp-") -> Path:
        """
        Create a fresh, uniquely named scratch directory.

        Raises:
            InfraError: If the directory cannot be created
        """
        parent = self._ensure(self._root / "tmp")
        try:
            return Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
        except OSError as e:
            raise InfraError(f"Cannot create temporary directory in {parent}: {e}") from e

    @staticmethod
    def _ensure(path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InfraError(f"Cannot create directory {path}: {e}") from e
        return path


__all__ = ["DirectoryFactory"]
