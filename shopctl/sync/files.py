"""Local file index and file helpers.

The index enumerates the files under a store directory that the sync
manages. Paths matched by the ``.shopifyignore`` file at the root of the
scanned tree are left out. Ignore rules are compiled once per base
directory and kept for the lifetime of the index.
"""

import hashlib
import logging
import os
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Pattern, Set, Union

from ..exceptions import FileOperationError

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".shopifyignore"

TEXT_EXTENSIONS = {
    ".txt", ".htm", ".html", ".csv", ".svg", ".json", ".js", ".liquid",
    ".css", ".scss", ".md", ".xml", ".map",
}

FileData = Union[str, bytes]


def glob_to_regex(pattern: str) -> Pattern[str]:
    """Translate a gitignore-style glob into a regex over posix relative paths.

    ``*`` stays within one path segment, ``**`` crosses segments and ``?``
    matches one character. A pattern without a slash matches at any depth;
    a leading slash (or a slash in the middle) anchors it to the base
    directory. Matching a directory also matches everything below it.
    """
    pattern = pattern.strip()
    anchored = pattern.startswith("/") or "/" in pattern.strip("/")
    pattern = pattern.strip("/")

    parts: List[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1

    prefix = "^" if anchored else "(?:^|.*/)"
    return re.compile(prefix + "".join(parts) + "(?:/.*)?$")


def read_ignore_file(base_dir: Path) -> List[str]:
    """Read the glob patterns of the ignore file in ``base_dir``."""
    ignore_file = Path(base_dir) / IGNORE_FILE_NAME
    if not ignore_file.is_file():
        return []

    patterns = []
    for line in ignore_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


class LocalFileIndex:
    """Enumerates managed files below a base directory."""

    def __init__(self) -> None:
        self._ignore_rules: Dict[Path, List[Pattern[str]]] = {}
        self._lock = threading.Lock()

    def ignore_rules(self, base_dir: Union[str, Path]) -> List[Pattern[str]]:
        """Compiled ignore rules for ``base_dir``, loaded on first use."""
        key = Path(base_dir).resolve()
        with self._lock:
            if key not in self._ignore_rules:
                patterns = read_ignore_file(key)
                if patterns:
                    logger.debug("Loaded %d ignore rules from %s", len(patterns), key / IGNORE_FILE_NAME)
                self._ignore_rules[key] = [glob_to_regex(p) for p in patterns]
            return self._ignore_rules[key]

    def is_ignored(self, base_dir: Union[str, Path], path: Union[str, Path]) -> bool:
        """Check a path (absolute, or relative to ``base_dir``) against the ignore rules."""
        rules = self.ignore_rules(base_dir)
        if not rules:
            return False

        path = Path(path)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(Path(base_dir).resolve())
            except ValueError:
                return False
        relative = path.as_posix()
        return any(rule.search(relative) for rule in rules)

    def list_files(
        self,
        base_dir: Union[str, Path],
        sub_dirs: Iterable[str] = (),
        suffix: Optional[str] = None,
    ) -> Set[str]:
        """List managed files as posix paths relative to ``base_dir``.

        Args:
            base_dir: Root of the tree; its ignore file applies
            sub_dirs: Subdirectories to walk; the whole tree when empty
            suffix: Only include files ending with this suffix

        Returns:
            Relative paths that are not ignored
        """
        base = Path(base_dir)
        files: Set[str] = set()
        for sub_dir in list(sub_dirs) or ["."]:
            root = base / sub_dir
            if not root.is_dir():
                continue
            for dirpath, _dirnames, filenames in os.walk(root):
                for filename in filenames:
                    if filename == IGNORE_FILE_NAME:
                        continue
                    if suffix and not filename.endswith(suffix):
                        continue
                    relative = (Path(dirpath) / filename).relative_to(base).as_posix()
                    if self.is_ignored(base, relative):
                        logger.debug("Ignoring (from rules): %s", relative)
                        continue
                    files.add(relative)
        return files

    def clear(self) -> None:
        with self._lock:
            self._ignore_rules.clear()


def md5_bytes(data: FileData) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.md5(data).hexdigest()


def md5_file(path: Union[str, Path]) -> Optional[str]:
    """MD5 of a file's bytes, or None if it does not exist."""
    hash_md5 = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                hash_md5.update(chunk)
    except (FileNotFoundError, IsADirectoryError):
        return None
    return hash_md5.hexdigest()


def is_text_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in TEXT_EXTENSIONS


def read_file(path: Union[str, Path]) -> Optional[FileData]:
    """Read a local file: text files as str, everything else as bytes.

    Returns:
        The content, or None if the file does not exist
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FileOperationError(f"Failed to read {path}: {e}", file_path=str(path), operation="read")

    if is_text_file(path):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data
    return data


def save_file(path: Union[str, Path], data: FileData) -> None:
    """Write a file, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(data)
        else:
            path.write_bytes(data)
    except OSError as e:
        raise FileOperationError(f"Failed to write {path}: {e}", file_path=str(path), operation="write")


def delete_file(path: Union[str, Path]) -> None:
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileOperationError(f"Failed to delete {path}: {e}", file_path=str(path), operation="delete")
