"""Work queue of addresses that always yields the lowest address first."""

from __future__ import annotations


class AddressQueue:
    """A set of pending addresses, popped in increasing order."""

    def __init__(self) -> None:
        self._addrs: set[int] = set()

    def push(self, addr: int) -> None:
        """Add ``addr`` to the queue; duplicates are merged."""
        self._addrs.add(addr)

    def pop(self) -> int:
        """Remove and return the lowest address in the queue."""
        if not self._addrs:
            raise IndexError("pop from empty address queue")
        addr = min(self._addrs)
        self._addrs.remove(addr)
        return addr

    def __len__(self) -> int:
        return len(self._addrs)

    def __contains__(self, addr: object) -> bool:
        return addr in self._addrs