"""Conflict resolution for merges of the base branch into a feature branch.

The activity log is append-only and every line records a synthetic commit,
so it is resolved by taking the union of both sides. Every other file keeps
the feature branch's version.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from autogit.core.errors import PartialResolutionError
from autogit.gateway.git.abc import Git

logger = logging.getLogger(__name__)

ACTIVITY_LOG_FILENAME = "commits.txt"

RESOLUTION_COMMIT_MESSAGE = "Auto-resolve merge conflicts"

OURS_MARKER = "<" * 7
BASE_MARKER = "|" * 7
SEPARATOR = "=" * 7
THEIRS_MARKER = ">" * 7

_MARKER_LINE = re.compile(r"^(<{7}|>{7})( |$)", re.MULTILINE)

_MARKER_LINE_BYTES = re.compile(rb"^(<{7}|>{7})( |$)", re.MULTILINE)


@dataclass(frozen=True)
class ConflictHunk:
    ours: tuple[str, ...]
    theirs: tuple[str, ...]


@dataclass(frozen=True)
class ConflictResolution:
    resolved: tuple[str, ...]
    skipped: tuple[str, ...]


def parse_conflict_segments(content: str) -> list[str | ConflictHunk]:
    """Split file content into plain lines and conflict hunks.

    diff3 base sections are discarded.

    Raises:
        ValueError: If a conflict region is not terminated
    """
    segments: list[str | ConflictHunk] = []
    state = "normal"
    ours: list[str] = []
    theirs: list[str] = []

    for line in content.splitlines():
        if state == "normal":
            if line.startswith(OURS_MARKER):
                state = "ours"
                ours, theirs = [], []
            else:
                segments.append(line)
        elif state == "ours":
            if line.startswith(BASE_MARKER):
                state = "base"
            elif line.rstrip() == SEPARATOR:
                state = "theirs"
            else:
                ours.append(line)
        elif state == "base":
            if line.rstrip() == SEPARATOR:
                state = "theirs"
        elif line.startswith(THEIRS_MARKER):
            segments.append(ConflictHunk(ours=tuple(ours), theirs=tuple(theirs)))
            state = "normal"
        else:
            theirs.append(line)

    if state != "normal":
        raise ValueError("Unterminated conflict region")
    return segments


def has_conflict_markers(content: str) -> bool:
    return _MARKER_LINE.search(content) is not None


def union_merge_log(content: str) -> str:
    """Keep every distinct non-blank line from both sides, in first-seen order."""
    seen: set[str] = set()
    lines: list[str] = []

    def keep(line: str) -> None:
        key = line.strip()
        if not key or key in seen:
            return
        seen.add(key)
        lines.append(line.rstrip())

    for segment in parse_conflict_segments(content):
        if isinstance(segment, ConflictHunk):
            for line in (*segment.ours, *segment.theirs):
                keep(line)
        else:
            keep(segment)

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def keep_ours(content: str) -> str:
    """Replace each conflict hunk with its "ours" side; other lines are untouched."""
    lines: list[str] = []
    for segment in parse_conflict_segments(content):
        if isinstance(segment, ConflictHunk):
            lines.extend(segment.ours)
        else:
            lines.append(segment)
    result = "\n".join(lines)
    if content.endswith("\n") and lines:
        result += "\n"
    return result


def resolve_file_content(path: str, content: str) -> str:
    if Path(path).name == ACTIVITY_LOG_FILENAME:
        return union_merge_log(content)
    return keep_ours(content)


def resolve_conflicts(git: Git, repo_root: Path, paths: Sequence[str]) -> ConflictResolution:
    """Resolve, stage and commit every conflicted path.

    Paths missing from the working tree are skipped; if git still reports
    them unmerged afterwards the resolution fails.

    Raises:
        PartialResolutionError: If markers or unmerged paths remain; nothing
            is committed in that case
    """
    resolved: list[str] = []
    skipped: list[str] = []
    unresolved: list[str] = []

    for rel_path in paths:
        file_path = repo_root / rel_path
        if not file_path.is_file():
            logger.debug("Conflicted path %s is not in the working tree; skipping", rel_path)
            skipped.append(rel_path)
            continue
        raw = file_path.read_bytes()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            # Binary conflicts leave "ours" in the working tree with no markers.
            if Path(rel_path).name == ACTIVITY_LOG_FILENAME or _MARKER_LINE_BYTES.search(raw):
                logger.debug("Cannot decode conflicted file %s", rel_path)
                unresolved.append(rel_path)
            else:
                resolved.append(rel_path)
            continue
        try:
            new_content = resolve_file_content(rel_path, content)
        except ValueError as e:
            logger.debug("Cannot resolve %s: %s", rel_path, e)
            unresolved.append(rel_path)
            continue
        if has_conflict_markers(new_content):
            unresolved.append(rel_path)
            continue
        file_path.write_text(new_content, encoding="utf-8")
        resolved.append(rel_path)

    if resolved:
        git.stage_files(repo_root, resolved)

    remaining = sorted(set(git.get_conflicted_files(repo_root)) | set(unresolved))
    if remaining:
        raise PartialResolutionError(
            f"Conflicts remain in {len(remaining)} file(s): {', '.join(remaining)}",
            paths=remaining,
        )

    git.commit(
        repo_root,
        RESOLUTION_COMMIT_MESSAGE,
        authored_at=None,
        co_author=None,
        no_verify=True,
    )
    return ConflictResolution(resolved=tuple(resolved), skipped=tuple(skipped))
