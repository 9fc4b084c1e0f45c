"""Arena-backed doubly linked list ordering entries by recency."""

from __future__ import annotations

from typing import Iterator

_SENTINEL = 0


class RecencyList:
    """Most-recently-used first, least-recently-used last.

    Nodes live in parallel ``prev``/``next``/``handle`` arrays and are
    addressed by integer index; slot 0 is the sentinel that closes the ring,
    so no operation needs to special-case the ends. Freed node slots are
    recycled through a free list. Every operation is O(1).
    """

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        self._prev: list[int] = [_SENTINEL]
        self._next: list[int] = [_SENTINEL]
        self._handle: list[int] = [-1]
        self._free: list[int] = []
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def __iter__(self) -> Iterator[int]:
        """Yield entry handles from MRU to LRU."""
        node = self._next[_SENTINEL]
        while node != _SENTINEL:
            yield self._handle[node]
            node = self._next[node]

    def push_front(self, handle: int) -> int:
        """Insert *handle* at the head and return its node index."""
        if self._free:
            node = self._free.pop()
            self._handle[node] = handle
        else:
            node = len(self._handle)
            self._prev.append(_SENTINEL)
            self._next.append(_SENTINEL)
            self._handle.append(handle)
        self._link_front(node)
        self._len += 1
        return node

    def move_to_front(self, node: int) -> None:
        if self._next[_SENTINEL] == node:
            return
        self._unlink(node)
        self._link_front(node)

    def remove(self, node: int) -> int:
        """Unlink *node*, recycle its slot and return the handle it carried."""
        self._unlink(node)
        handle = self._handle[node]
        self._handle[node] = -1
        self._free.append(node)
        self._len -= 1
        return handle

    def peek_back(self) -> int | None:
        """Handle of the least recently used entry, without removing it."""
        tail = self._prev[_SENTINEL]
        return None if tail == _SENTINEL else self._handle[tail]

    def pop_back(self) -> int | None:
        """Remove the least recently used node and return its handle."""
        tail = self._prev[_SENTINEL]
        if tail == _SENTINEL:
            return None
        return self.remove(tail)

    # --- internals ---

    def _link_front(self, node: int) -> None:
        first = self._next[_SENTINEL]
        self._prev[node] = _SENTINEL
        self._next[node] = first
        self._prev[first] = node
        self._next[_SENTINEL] = node

    def _unlink(self, node: int) -> None:
        prev, nxt = self._prev[node], self._next[node]
        self._next[prev] = nxt
        self._prev[nxt] = prev
