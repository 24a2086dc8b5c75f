"""Git working tree probe for the version-control fragment."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from shellprompt.config import PromptConfig
from shellprompt.storage.models import Fragment
from shellprompt.utils.system import run_probe

logger = logging.getLogger(__name__)


@dataclass
class GitStatus:
    branch: str
    staged: bool = False
    unstaged: bool = False
    untracked: bool = False

    @property
    def dirty(self) -> bool:
        return self.staged or self.unstaged or self.untracked

    def markers(self, prompt: PromptConfig) -> str:
        """Dirty markers in fixed order: staged, unstaged, untracked."""
        out = ""
        if self.staged:
            out += prompt.staged_marker
        if self.unstaged:
            out += prompt.unstaged_marker
        if self.untracked:
            out += prompt.untracked_marker
        return out


def _git(args: list[str], cwd: str | None, timeout: float) -> str | None:
    result = run_probe(["git", *args], cwd=cwd, timeout=timeout)
    if result is None or result.returncode != 0:
        return None
    return result.stdout


def _branch(cwd: str | None, timeout: float) -> str:
    ref = _git(["symbolic-ref", "--short", "-q", "HEAD"], cwd, timeout)
    if ref and ref.strip():
        return ref.strip()
    # Detached HEAD
    rev = _git(["rev-parse", "--short", "HEAD"], cwd, timeout)
    if rev and rev.strip():
        return rev.strip()
    return "HEAD"


def parse_porcelain(output: str) -> tuple[bool, bool, bool]:
    """Return (staged, unstaged, untracked) from ``git status --porcelain``."""
    staged = unstaged = untracked = False
    for line in output.splitlines():
        if len(line) < 2:
            continue
        index, worktree = line[0], line[1]
        if index == "?" and worktree == "?":
            untracked = True
            continue
        if index not in " !":
            staged = True
        if worktree not in " !":
            unstaged = True
    return staged, unstaged, untracked


def probe_git(cwd: str | None = None, timeout: float = 2.0) -> GitStatus | None:
    """Inspect the repository containing ``cwd``. ``None`` if there is none."""
    inside = _git(["rev-parse", "--is-inside-work-tree"], cwd, timeout)
    if inside is None or inside.strip() != "true":
        return None

    branch = _branch(cwd, timeout)
    porcelain = _git(["status", "--porcelain", "--untracked-files=normal"], cwd, timeout)
    if porcelain is None:
        logger.debug("git status failed in %s", cwd)
        return GitStatus(branch=branch)

    staged, unstaged, untracked = parse_porcelain(porcelain)
    return GitStatus(branch=branch, staged=staged, unstaged=unstaged, untracked=untracked)


def vcs_fragment(status: GitStatus | None, prompt: PromptConfig) -> Fragment | None:
    if status is None:
        return None
    return Fragment(
        text=status.branch + status.markers(prompt),
        style="dirty" if status.dirty else "clean",
    )
