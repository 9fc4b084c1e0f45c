"""Open-addressing hash index mapping cache keys to entry handles.

Keys are hashed through a :class:`KeyHasher`. When the hasher carries a
secret seed, ``str``/``bytes``/``int``/tuple keys are digested with keyed
BLAKE2b, so externally supplied keys cannot be crafted to collide.
"""

from __future__ import annotations

import hashlib
import os
import struct
from typing import Hashable, Iterator

_EMPTY = object()
_TOMBSTONE = object()

_SEED_BYTES = 16


class KeyHasher:
    """Hash function for :class:`HashIndex`.

    Args:
        seed: Secret key for BLAKE2b. ``None`` uses the built-in ``hash()``
            unseeded, which is only safe for trusted keys.
    """

    __slots__ = ("_seed",)

    def __init__(self, seed: bytes | None = None) -> None:
        if seed is not None and not 1 <= len(seed) <= 64:
            raise ValueError("hash seed must be 1..64 bytes")
        self._seed = seed

    @classmethod
    def random(cls) -> KeyHasher:
        """Create a hasher with a fresh random seed."""
        return cls(os.urandom(_SEED_BYTES))

    @property
    def seeded(self) -> bool:
        return self._seed is not None

    def __call__(self, key: Hashable) -> int:
        if self._seed is None:
            return hash(key)
        digest = hashlib.blake2b(_encode(key), key=self._seed, digest_size=8).digest()
        return int.from_bytes(digest, "little")


def _encode(key: Hashable) -> bytes:
    out = bytearray()
    _encode_into(key, out)
    return bytes(out)


def _encode_into(key: Hashable, out: bytearray) -> None:
    # Keys that compare equal must encode identically (1 == 1.0 == True).
    if isinstance(key, float) and key.is_integer():
        key = int(key)
    if isinstance(key, int):
        out += b"i"
        raw = key.to_bytes(key.bit_length() // 8 + 1, "big", signed=True)
        out += struct.pack(">I", len(raw)) + raw
    elif isinstance(key, str):
        raw = key.encode("utf-8", "surrogatepass")
        out += b"s" + struct.pack(">I", len(raw)) + raw
    elif isinstance(key, bytes):
        out += b"y" + struct.pack(">I", len(key)) + key
    elif isinstance(key, float):
        out += b"f" + struct.pack(">d", key)
    elif key is None:
        out += b"n"
    elif isinstance(key, tuple):
        out += b"t" + struct.pack(">I", len(key))
        for item in key:
            _encode_into(item, out)
    else:
        out += b"h" + struct.pack(">q", hash(key))


class HashIndex:
    """Maps keys to integer handles with O(1) average lookup/insert/remove.

    Linear probing over a power-of-two table. Removed slots are left as
    tombstones and reused by later inserts. The table doubles once live
    plus tombstone slots exceed ``MAX_LOAD`` of its size, or is rebuilt at
    the same size when most of that load is tombstones.
    """

    MIN_SIZE = 8
    MAX_LOAD = 0.875

    def __init__(self, hasher: KeyHasher | None = None, initial_size: int = MIN_SIZE) -> None:
        self._hasher = hasher or KeyHasher.random()
        size = self.MIN_SIZE
        while size < initial_size:
            size *= 2
        self._reset(size)

    def _reset(self, size: int) -> None:
        self._keys: list[object] = [_EMPTY] * size
        self._hashes: list[int] = [0] * size
        self._handles: list[int] = [-1] * size
        self._mask = size - 1
        self._used = 0
        self._filled = 0

    @property
    def table_size(self) -> int:
        return self._mask + 1

    def __len__(self) -> int:
        return self._used

    def __contains__(self, key: Hashable) -> bool:
        return self.lookup(key) is not None

    def __iter__(self) -> Iterator[Hashable]:
        for k in self._keys:
            if k is not _EMPTY and k is not _TOMBSTONE:
                yield k

    def lookup(self, key: Hashable) -> int | None:
        """Return the handle stored for *key*, or ``None``."""
        slot = self._find(key, self._hasher(key))
        return None if slot < 0 else self._handles[slot]

    def insert(self, key: Hashable, handle: int) -> None:
        """Insert or overwrite the handle for *key*."""
        h = self._hasher(key)
        keys = self._keys
        i = h & self._mask
        free = -1
        while True:
            k = keys[i]
            if k is _EMPTY:
                break
            if k is _TOMBSTONE:
                if free < 0:
                    free = i
            elif self._hashes[i] == h and (k is key or k == key):
                self._handles[i] = handle
                return
            i = (i + 1) & self._mask

        if free < 0:
            free = i
            self._filled += 1
        keys[free] = key
        self._hashes[free] = h
        self._handles[free] = handle
        self._used += 1

        if self._filled > self.table_size * self.MAX_LOAD:
            self._rehash()

    def remove(self, key: Hashable) -> int | None:
        """Remove *key* and return its handle, or ``None`` if absent."""
        slot = self._find(key, self._hasher(key))
        if slot < 0:
            return None
        handle = self._handles[slot]
        self._keys[slot] = _TOMBSTONE
        self._handles[slot] = -1
        self._used -= 1
        return handle

    def clear(self) -> None:
        self._reset(self.MIN_SIZE)

    # --- internals ---

    def _find(self, key: Hashable, h: int) -> int:
        keys = self._keys
        i = h & self._mask
        while True:
            k = keys[i]
            if k is _EMPTY:
                return -1
            if k is not _TOMBSTONE and self._hashes[i] == h and (k is key or k == key):
                return i
            i = (i + 1) & self._mask

    def _rehash(self) -> None:
        size = self.table_size
        if self._used > size * self.MAX_LOAD / 2:
            size *= 2
        old = [
            (k, h, handle)
            for k, h, handle in zip(self._keys, self._hashes, self._handles)
            if k is not _EMPTY and k is not _TOMBSTONE
        ]
        self._reset(size)
        mask = self._mask
        for k, h, handle in old:
            i = h & mask
            while self._keys[i] is not _EMPTY:
                i = (i + 1) & mask
            self._keys[i] = k
            self._hashes[i] = h
            self._handles[i] = handle
        self._used = self._filled = len(old)
