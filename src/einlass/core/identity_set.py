"""
Ordered set keyed by object identity

Upload files are compared by identity, never by value: two distinct files
with the same name and size are still two members.
"""

from typing import Any, Dict, Iterator, List, Optional

_MISSING = object()


class IdentitySet:
    """Insertion-ordered set of objects keyed by ``id()``"""

    def __init__(self, items=None):
        self._items: Dict[int, Any] = {}
        for item in items or ():
            self.add(item)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, item: Any) -> bool:
        return id(item) in self._items

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items.values()))

    def __repr__(self) -> str:
        return f"IdentitySet({self.to_list()!r})"

    def add(self, item: Any) -> bool:
        """Append an item; returns False if it is already a member"""
        key = id(item)
        if key in self._items:
            return False
        self._items[key] = item
        return True

    def remove(self, item: Any) -> bool:
        """Remove an item; returns False if it was not a member"""
        return self._items.pop(id(item), _MISSING) is not _MISSING

    def unshift(self, item: Any) -> bool:
        """Insert an item ahead of every other member"""
        key = id(item)
        if key in self._items:
            return False
        self._items = {key: item, **self._items}
        return True

    def shift(self) -> Optional[Any]:
        """Take the oldest item, or None when empty"""
        if not self._items:
            return None
        key = next(iter(self._items))
        return self._items.pop(key)

    def pop(self) -> Optional[Any]:
        """Take the newest item, or None when empty"""
        if not self._items:
            return None
        return self._items.popitem()[1]

    def to_list(self) -> List[Any]:
        return list(self._items.values())

    def clear(self):
        self._items.clear()
