"""Three-way status resolution: working tree vs staging vs head."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .core import FileStatus, WorkingTreeStatus
from .graph import CommitGraph
from .snapshot import scan_working_tree
from .staging import StagingIndex


def classify(
    staged_hash: Optional[str],
    head_hash: Optional[str],
    working_hash: Optional[str],
) -> WorkingTreeStatus:
    """Classify a path from its three optional hashes.

    Rules, first match wins:

    1. staged present and equal to working        -> STAGED
    2. staged present, differs or working absent  -> MODIFIED
    3. not staged, head present, equal to working -> UNCHANGED
    4. not staged, head present, differs          -> MODIFIED
    5. not staged, not in head                    -> UNTRACKED

    DELETED is never produced here.
    """
    if staged_hash is not None:
        if working_hash is not None and staged_hash == working_hash:
            return WorkingTreeStatus.STAGED
        return WorkingTreeStatus.MODIFIED

    if head_hash is not None:
        if head_hash == working_hash:
            return WorkingTreeStatus.UNCHANGED
        return WorkingTreeStatus.MODIFIED

    return WorkingTreeStatus.UNTRACKED


@dataclass
class StatusReport:
    """Per-file statuses plus summary helpers for display."""

    files: List[FileStatus] = field(default_factory=list)
    head: Optional[str] = None

    @property
    def counts(self) -> Dict[WorkingTreeStatus, int]:
        counts: Dict[WorkingTreeStatus, int] = {}
        for f in self.files:
            counts[f.status] = counts.get(f.status, 0) + 1
        return counts

    def by_status(self, status: WorkingTreeStatus) -> List[FileStatus]:
        return [f for f in self.files if f.status == status]

    @property
    def has_changes(self) -> bool:
        """True if anything is staged, modified, or untracked."""
        return any(f.status != WorkingTreeStatus.UNCHANGED for f in self.files)

    def get(self, path: str) -> Optional[FileStatus]:
        for f in self.files:
            if f.path == path:
                return f
        return None


def resolve_status(staging: StagingIndex, graph: CommitGraph) -> StatusReport:
    """Classify every file in the working tree, sorted by path.

    Only files present in the working tree are enumerated; paths that exist
    solely in staging or in the head tree are not reported.
    """
    working = {path: f.hash for path, f in scan_working_tree(graph.ctx.root).items()}
    staged = staging.staged_hashes()
    head_files = graph.head_files()

    files = []
    for path in sorted(working):
        working_hash = working[path]
        staged_hash = staged.get(path)
        head_hash = head_files.get(path)
        files.append(FileStatus(
            path=path,
            working_hash=working_hash,
            staged_hash=staged_hash,
            head_hash=head_hash,
            status=classify(staged_hash, head_hash, working_hash),
        ))

    return StatusReport(files=files, head=graph.head())
