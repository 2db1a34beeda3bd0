from __future__ import annotations

import pytest

from oomol_fusion.upload.chunking import count_parts, slice_payload


@pytest.mark.parametrize(
    "size,part_size",
    [(10, 4), (12, 4), (1, 4), (4, 4), (5, 1), (1000, 333)],
)
def test_chunks_partition_payload(size: int, part_size: int) -> None:
    payload = bytes(range(256)) * (size // 256 + 1)
    payload = payload[:size]

    chunks = slice_payload(payload, part_size)

    assert len(chunks) == -(-size // part_size) == count_parts(size, part_size)
    assert [c.index for c in chunks] == list(range(1, len(chunks) + 1))
    assert sum(c.size for c in chunks) == size
    assert b"".join(c.data for c in chunks) == payload
    # Contiguous, no gaps or overlaps.
    assert chunks[0].start == 0
    for prev, cur in zip(chunks, chunks[1:]):
        assert cur.start == prev.end
    assert chunks[-1].end == size
    # Only the last chunk may be short.
    assert all(c.size == part_size for c in chunks[:-1])
    assert 0 < chunks[-1].size <= part_size


def test_chunk_fields_describe_byte_range() -> None:
    chunks = slice_payload(b"abcdefghij", 4)

    last = chunks[-1]
    assert (last.index, last.start, last.end, last.size) == (3, 8, 10, 2)
    assert last.data == b"ij"


def test_empty_payload_yields_no_chunks() -> None:
    assert slice_payload(b"", 4) == []
    assert count_parts(0, 4) == 0


@pytest.mark.parametrize("part_size", [0, -1])
def test_rejects_non_positive_part_size(part_size: int) -> None:
    with pytest.raises(ValueError):
        slice_payload(b"abc", part_size)
    with pytest.raises(ValueError):
        count_parts(3, part_size)


def test_chunk_bytes_are_materialized_copies() -> None:
    payload = bytearray(b"abcdef")
    chunks = slice_payload(bytes(payload), 3)

    assert all(isinstance(c.data, bytes) for c in chunks)
    assert "data" not in repr(chunks[0])
