import pytest

from disasmkit.queue import AddressQueue


def test_pops_in_increasing_order():
    q = AddressQueue()
    for addr in (0x30, 0x10, 0x20):
        q.push(addr)
    assert [q.pop() for _ in range(3)] == [0x10, 0x20, 0x30]
    assert len(q) == 0


def test_duplicates_merged():
    q = AddressQueue()
    q.push(0x10)
    q.push(0x10)
    assert len(q) == 1
    assert 0x10 in q


def test_pop_empty_raises():
    q = AddressQueue()
    with pytest.raises(IndexError):
        q.pop()


def test_pop_removes_address():
    q = AddressQueue()
    q.push(0x40)
    q.push(0x50)
    assert q.pop() == 0x40
    assert 0x40 not in q
    assert len(q) == 1
    assert bool(q)