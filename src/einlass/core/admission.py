"""
Admission pipeline for Einlass

Decides whether a candidate file may enter the queue:

- Constraints are zero-argument predicates over the whole queue (capacity
  style). If ANY constraint holds the candidate is refused with a
  QueueLimitError and no filter runs.
- Filters run in registration order with fail-fast AND semantics. The first
  filter that does not pass decides the rejection reason.

A filter passes by returning ``None`` or ``True``. It rejects by returning a
string (generic reason), ``False``, or an exception instance; typed
admission errors are used as-is, other exceptions are wrapped into a
FilterError. Any other return value (``0``, an empty dict, ...) passes.
A filter that raises is treated exactly like one that returned the
exception: ``evaluate`` never raises.
"""

import logging
import math
import re
from typing import Any, Callable, Iterable, List, Optional, Union

from .errors import (
    AdmissionError, ConfigurationError, DuplicateError, ErrorCode,
    FileExtensionError, FileSizeError, FilterError, QueueLimitError
)
from .identity_set import IdentitySet

logger = logging.getLogger(__name__)

FilterFunc = Callable[[Any], Any]
ConstraintFunc = Callable[[], bool]

SIZE_UNITS = {
    "t": 1099511627776,
    "g": 1073741824,
    "m": 1048576,
    "k": 1024,
}

_SIZE_PATTERN = re.compile(r"^([0-9.]+)([tgmk]?)b?$", re.IGNORECASE)

_SIZE_PREFIXES = ["", "K", "M", "G", "T", "P", "E", "Z", "Y"]


def parse_size(size: Union[str, int, float, None]) -> Optional[int]:
    """
    Parse a size limit into bytes

    Accepts raw byte counts and strings like ``"512"``, ``"2m"``, ``"1.5G"``
    or ``"10kb"`` (unit and trailing ``b`` are case-insensitive).

    Raises:
        ConfigurationError: if a string does not match the size syntax
    """
    if size is None:
        return None
    if isinstance(size, bool):
        raise ConfigurationError(f"Invalid size limit: {size!r}",
                                 error_code=ErrorCode.INVALID_SIZE_LIMIT)
    if isinstance(size, (int, float)):
        return int(size)

    match = _SIZE_PATTERN.match(size.strip())
    if not match:
        raise ConfigurationError(f"Invalid size limit: {size!r}",
                                 error_code=ErrorCode.INVALID_SIZE_LIMIT,
                                 context={"size_limit": size})
    try:
        value = float(match.group(1))
    except ValueError:
        raise ConfigurationError(f"Invalid size limit: {size!r}",
                                 error_code=ErrorCode.INVALID_SIZE_LIMIT,
                                 context={"size_limit": size})

    unit = match.group(2).lower()
    if unit:
        value *= SIZE_UNITS[unit]
    return int(value)


def format_size(size: Union[int, float]) -> str:
    """Render a byte count with a 1024-based unit, e.g. ``3MB`` or ``1.5GB``"""
    size = float(size)
    index = int(math.floor(math.log(size) / math.log(1024))) if size > 0 else 0
    index = min(max(index, 0), len(_SIZE_PREFIXES) - 1)
    precision = 10 ** (0 if index < 2 else (2 if index > 2 else 1))
    value = size / (1024 ** index)
    value = math.floor(value * precision + 0.5) / precision
    return f"{value:g}{_SIZE_PREFIXES[index]}B"


class Filters:
    """Ordered filter chain with fail-fast AND semantics"""

    def __init__(self):
        self.filters = IdentitySet()

    def add(self, filter_func: FilterFunc) -> "Filters":
        self.filters.add(filter_func)
        return self

    def remove(self, filter_func: FilterFunc) -> "Filters":
        self.filters.remove(filter_func)
        return self

    def __len__(self) -> int:
        return len(self.filters)

    def filter(self, file) -> Optional[AdmissionError]:
        """Run filters in order; returns the first rejection or None"""
        for filter_func in self.filters:
            try:
                outcome = filter_func(file)
            except Exception as e:
                logger.warning(f"Filter {_describe(filter_func)} raised for {file.name}: {e}")
                outcome = e

            error = self._to_error(file, filter_func, outcome)
            if error is not None:
                return error
        return None

    @staticmethod
    def _to_error(file, filter_func: FilterFunc, outcome: Any) -> Optional[AdmissionError]:
        if outcome is None or outcome is True:
            return None
        if isinstance(outcome, AdmissionError):
            return outcome
        if isinstance(outcome, str):
            return FilterError(file, outcome)
        if outcome is False:
            return FilterError(file, f"rejected by filter {_describe(filter_func)}")
        if isinstance(outcome, BaseException):
            return FilterError(file, str(outcome) or type(outcome).__name__, cause=outcome)
        # unrecognised return values pass
        return None


class Constraints:
    """Capacity-style predicates combined with OR"""

    def __init__(self):
        self.constraints = IdentitySet()

    def add(self, constraint: ConstraintFunc) -> "Constraints":
        self.constraints.add(constraint)
        return self

    def remove(self, constraint: ConstraintFunc) -> "Constraints":
        self.constraints.remove(constraint)
        return self

    def __len__(self) -> int:
        return len(self.constraints)

    def some(self) -> bool:
        """True if any constraint currently holds"""
        for constraint in self.constraints:
            try:
                if constraint():
                    return True
            except Exception as e:
                # a failing constraint counts as holding
                logger.error(f"Constraint {_describe(constraint)} raised: {e}")
                return True
        return False


class AdmissionPipeline:
    """Constraints (OR) followed by filters (AND, fail-fast)"""

    def __init__(self):
        self.filters = Filters()
        self.constraints = Constraints()

    def add_filter(self, filter_func: FilterFunc) -> "AdmissionPipeline":
        self.filters.add(filter_func)
        return self

    def remove_filter(self, filter_func: FilterFunc) -> "AdmissionPipeline":
        self.filters.remove(filter_func)
        return self

    def add_constraint(self, constraint: ConstraintFunc) -> "AdmissionPipeline":
        self.constraints.add(constraint)
        return self

    def remove_constraint(self, constraint: ConstraintFunc) -> "AdmissionPipeline":
        self.constraints.remove(constraint)
        return self

    def is_limit(self) -> bool:
        return self.constraints.some()

    def evaluate(self, file) -> Optional[AdmissionError]:
        """Return None when the file may be admitted, else the rejection"""
        if self.constraints.some():
            return QueueLimitError(file)
        return self.filters.filter(file)


def _describe(func: Callable) -> str:
    return getattr(func, "__name__", None) or type(func).__name__


# Built-in filters and constraints

def extension_filter(extension_groups: Iterable[Iterable[str]]) -> Optional[FilterFunc]:
    """
    Allow-list on ``file.ext``; the extension must match one entry of any
    group exactly (case-sensitive). Returns None when there is nothing to
    restrict.
    """
    groups: List[List[str]] = [list(group) for group in extension_groups or ()]
    if not any(groups):
        return None

    def accept_extension(file):
        if any(file.ext in group for group in groups):
            return None
        return FileExtensionError(file)

    return accept_extension


def size_filter(size_limit: Union[str, int, None]) -> Optional[FilterFunc]:
    """Reject files strictly larger than the limit; None when unlimited"""
    limit = parse_size(size_limit)
    if not limit or limit <= 0:
        return None

    def limit_size(file):
        if file.size > limit:
            return FileSizeError(
                file,
                f"file size {format_size(file.size)} is greater than limit {format_size(limit)}"
            )
        return None

    return limit_size


def duplicate_filter(stat) -> FilterFunc:
    """Reject a candidate whose (name, size) matches a current queue member"""

    def prevent_duplicate(file):
        for item in stat.get_files():
            if item.name == file.name and item.size == file.size:
                return DuplicateError(file)
        return None

    return prevent_duplicate


def capacity_constraint(stat, capacity: int) -> Optional[ConstraintFunc]:
    """Holds once the queue total reaches ``capacity``; None when unlimited"""
    if not capacity or capacity <= 0:
        return None

    def queue_capacity():
        return stat.total() >= capacity

    return queue_capacity
