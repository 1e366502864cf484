"""
Queue statistics

Live queue membership plus per-status counts computed on demand from the
current members. Queues are bounded by interactive use, so every query is
a plain scan.
"""

from typing import Any, Dict, List, Optional, Union

from .identity_set import IdentitySet
from .status import FileStatus, STATUSES, status_name


class QueueStatistics:
    """Membership and aggregate counts of admitted files"""

    def __init__(self):
        self.members = IdentitySet()

    def add(self, file) -> bool:
        """Add a member; False if the file is already tracked"""
        return self.members.add(file)

    def remove(self, file) -> bool:
        return self.members.remove(file)

    def total(self) -> int:
        return len(self.members)

    def __contains__(self, file) -> bool:
        return file in self.members

    def files(self) -> List[Any]:
        """Members in admission order"""
        return self.members.to_list()

    def get_files(self, mask: Optional[FileStatus] = None) -> List[Any]:
        """All members, or only those whose status matches ``mask``"""
        files = self.members.to_list()
        if not mask:
            return files
        return [file for file in files if file.status & mask]

    # The status-mask query is the main read path
    filter = get_files

    def counts_by_status(self, mask: Optional[FileStatus] = None) -> Dict[Union[FileStatus, str], int]:
        """
        Count members per status

        Returns a mapping of status -> count for the statuses present among
        the (optionally masked) members, plus a ``"sum"`` entry equal to the
        number of matched members.
        """
        counts: Dict[Union[FileStatus, str], int] = {}
        files = self.get_files(mask)
        for file in files:
            counts[file.status] = counts.get(file.status, 0) + 1
        counts["sum"] = len(files)
        return counts

    def to_dict(self) -> Dict[str, int]:
        """Counts keyed by lowercase status name, every status included"""
        counts = self.counts_by_status()
        summary = {status_name(status): counts.get(status, 0) for status in STATUSES}
        summary["total"] = counts["sum"]
        return summary

    def __repr__(self) -> str:
        return f"QueueStatistics(total={self.total()})"
