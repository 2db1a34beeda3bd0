from __future__ import annotations

from typing import List

from oomol_fusion.models import Chunk


def count_parts(total_size: int, part_size: int) -> int:
    """Number of parts ``total_size`` bytes split into: ceil(total / part)."""
    if part_size <= 0:
        raise ValueError(f"part_size must be > 0, got {part_size}")
    return -(-total_size // part_size)


def slice_payload(payload: bytes, part_size: int) -> List[Chunk]:
    """
    Split ``payload`` into contiguous chunks of ``part_size`` bytes.

    Indices start at 1 and ascend without gaps; only the last chunk may be
    shorter. Each chunk holds its own copy of the bytes, so the whole payload
    is materialized in memory. An empty payload yields no chunks.
    """
    if part_size <= 0:
        raise ValueError(f"part_size must be > 0, got {part_size}")

    view = memoryview(payload)
    total = len(view)
    chunks: List[Chunk] = []
    for start in range(0, total, part_size):
        end = min(start + part_size, total)
        chunks.append(
            Chunk(
                index=start // part_size + 1,
                start=start,
                end=end,
                size=end - start,
                data=bytes(view[start:end]),
            )
        )
    return chunks
