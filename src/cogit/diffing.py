"""Line-level diff computation and unified patch rendering.

Hunk Algorithm:
---------------
Both texts are split into lines and walked with one cursor each:

1. While the lines under the cursors are equal, emit CONTEXT and advance both.
2. On the first mismatch, emit one REMOVED (old cursor) and one ADDED
   (new cursor), advance both, and stop comparing.
3. Flush the rest of the old side as REMOVED, then the rest of the new
   side as ADDED.

Only the last ``context_lines`` context lines before the first divergence
are kept; hunk start positions are shifted past the dropped ones.

Exactly one hunk is produced per call. The walk never re-aligns after a
mismatch, so everything past the first changed line comes out as one
REMOVED run followed by one ADDED run, even where later lines still match.
An LCS or Myers alignment can replace ``_walk`` without changing the hunk
or patch formats.
"""

from pathlib import Path
from typing import List, Optional, Union

from .constants import DIFF_CONTEXT_LINES
from .core import DiffHunk, DiffLine, FileChangeType, FileDiff, LineChangeType
from .errors import NoChangesToCommitError
from .hashing import compute_hash

_PREFIX = {
    LineChangeType.ADDED: "+",
    LineChangeType.REMOVED: "-",
    LineChangeType.CONTEXT: " ",
}


def split_lines(text: str) -> List[str]:
    """Split text on newlines.

    A trailing newline does not produce an empty final line, and a carriage
    return immediately before a newline is dropped.
    """
    parts = text.split("\n")
    tail = parts.pop()
    lines = [p[:-1] if p.endswith("\r") else p for p in parts]
    if tail:
        lines.append(tail)
    return lines


def _display_path(path: Union[str, Path]) -> str:
    return path.as_posix() if isinstance(path, Path) else str(path)


class DiffEngine:
    """Computes hunks between two versions of a text and renders patches."""

    def __init__(self, context_lines: int = DIFF_CONTEXT_LINES):
        self.context_lines = context_lines

    def compute(self, old: Optional[str], new: str) -> List[DiffHunk]:
        """Compute the hunks turning old into new.

        Args:
            old: Previous content, or None if the file is new
            new: Current content

        Returns:
            A list holding exactly one hunk

        Raises:
            NoChangesToCommitError: If old and new are identical
        """
        if old is None:
            return [self._addition_hunk(new)]
        if old == new:
            raise NoChangesToCommitError()
        return [self._walk(split_lines(old), split_lines(new))]

    def _addition_hunk(self, new: str) -> DiffHunk:
        new_lines = split_lines(new)
        return DiffHunk(
            old_start=0,
            old_count=0,
            new_start=1,
            new_count=len(new_lines),
            lines=[
                DiffLine(line_number=i + 1, content=line, change_type=LineChangeType.ADDED)
                for i, line in enumerate(new_lines)
            ],
        )

    def _walk(self, old_lines: List[str], new_lines: List[str]) -> DiffHunk:
        lines: List[DiffLine] = []
        old_idx = 0
        new_idx = 0

        while old_idx < len(old_lines) and new_idx < len(new_lines):
            if old_lines[old_idx] == new_lines[new_idx]:
                lines.append(DiffLine(
                    line_number=old_idx + 1,
                    content=old_lines[old_idx],
                    change_type=LineChangeType.CONTEXT,
                ))
                old_idx += 1
                new_idx += 1
                continue

            lines.append(DiffLine(
                line_number=old_idx + 1,
                content=old_lines[old_idx],
                change_type=LineChangeType.REMOVED,
            ))
            lines.append(DiffLine(
                line_number=new_idx + 1,
                content=new_lines[new_idx],
                change_type=LineChangeType.ADDED,
            ))
            old_idx += 1
            new_idx += 1
            break

        for i in range(old_idx, len(old_lines)):
            lines.append(DiffLine(line_number=i + 1, content=old_lines[i], change_type=LineChangeType.REMOVED))
        for i in range(new_idx, len(new_lines)):
            lines.append(DiffLine(line_number=i + 1, content=new_lines[i], change_type=LineChangeType.ADDED))

        # Trim leading context, but only when there is a divergence to lead up to
        skip = 0
        leading = 0
        for line in lines:
            if line.change_type != LineChangeType.CONTEXT:
                skip = max(0, leading - self.context_lines)
                break
            leading += 1
        lines = lines[skip:]

        return DiffHunk(
            old_start=skip + 1,
            old_count=sum(1 for l in lines if l.change_type != LineChangeType.ADDED),
            new_start=skip + 1,
            new_count=sum(1 for l in lines if l.change_type != LineChangeType.REMOVED),
            lines=lines,
        )

    def render(self, hunks: List[DiffHunk], path: Union[str, Path]) -> str:
        """Render hunks as a unified-diff patch."""
        name = _display_path(path)
        out = [f"--- a/{name}\n", f"+++ b/{name}\n"]
        for hunk in hunks:
            out.append(f"@@ -{hunk.old_start},{hunk.old_count} +{hunk.new_start},{hunk.new_count} @@\n")
            for line in hunk.lines:
                out.append(f"{_PREFIX[line.change_type]}{line.content}\n")
        return "".join(out)

    def file_diff(
        self,
        path: Union[str, Path],
        old: Optional[str],
        new: str,
        old_hash: Optional[str] = None,
        new_hash: Optional[str] = None,
    ) -> FileDiff:
        """Diff two versions of a single file.

        Hashes default to the SHA-256 of the UTF-8 encoded text; callers
        holding the original bytes pass the blob hashes instead.

        Raises:
            NoChangesToCommitError: If old and new are identical
        """
        name = _display_path(path)
        if old is not None and old == new:
            raise NoChangesToCommitError(name)

        hunks = self.compute(old, new)
        if old is not None and old_hash is None:
            old_hash = compute_hash(old.encode("utf-8"))
        if new_hash is None:
            new_hash = compute_hash(new.encode("utf-8"))

        return FileDiff(
            path=name,
            old_hash=old_hash,
            new_hash=new_hash,
            change_type=FileChangeType.ADDED if old is None else FileChangeType.MODIFIED,
            hunks=hunks,
            patch_content=self.render(hunks, name),
        )


def compute_hunks(old: Optional[str], new: str) -> List[DiffHunk]:
    """Compute hunks with the default context setting."""
    return DiffEngine().compute(old, new)


def render_patch(hunks: List[DiffHunk], path: Union[str, Path]) -> str:
    """Render hunks with the default engine."""
    return DiffEngine().render(hunks, path)
