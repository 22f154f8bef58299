"""Thin wrapper around the git command line.

Used by ``init`` to commit each replayed change set with its original
timestamp, and by ``serve`` to name the development theme after the
current branch.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, Optional

from ..exceptions import FileOperationError

logger = logging.getLogger(__name__)


class GitRepo:
    """Git operations for the local store directory."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _run(self, args: list[str], env: Optional[Dict[str, str]] = None) -> str:
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
                env=env,
            )
        except FileNotFoundError as e:
            raise FileOperationError("git executable not found", file_path=str(self.path), operation="git") from e
        except subprocess.CalledProcessError as e:
            raise FileOperationError(f"Git error: {e.stderr or e}", file_path=str(self.path), operation="git") from e
        return res.stdout.strip()

    def current_branch(self) -> Optional[str]:
        """Return the checked-out branch, or None outside a git work tree."""
        try:
            return self._run(["symbolic-ref", "--short", "HEAD"]) or None
        except FileOperationError:
            return None

    def commit_all(self, message: str, commit_date: Optional[str] = None) -> None:
        """Stage everything and commit, allowing empty commits.

        Args:
            message: Commit message
            commit_date: ISO timestamp used for both author and committer date
        """
        env = None
        if commit_date:
            env = dict(os.environ)
            env["GIT_AUTHOR_DATE"] = commit_date
            env["GIT_COMMITTER_DATE"] = commit_date

        self._run(["add", "-A"], env=env)
        self._run(["commit", "--allow-empty", "-a", "-m", message], env=env)
        logger.info("COMMIT: %s", message)
