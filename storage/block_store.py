"""
In-memory block store backing a control-flow graph.
Blocks live in an arena and are referred to by their index; a sorted list
of start addresses answers exact and floor lookups.
"""

import bisect
from typing import Dict, Iterator, List, Optional, Sequence

from core.ir import BasicBlock, Instruction


class BlockStore:

    def __init__(self, buffer: Sequence[Instruction] = ()):
        self.buffer = buffer
        self._blocks: List[BasicBlock] = []          # id -> block
        self._starts: List[int] = []                 # ascending start addresses
        self._by_start: Dict[int, int] = {}          # start -> id

    # ---------------------------
    # Insertion
    # ---------------------------

    def add_block(self, start: int, size: int, first: int, count: int) -> BasicBlock:
        if start in self._by_start:
            raise ValueError(f"block already registered at 0x{start:x}")
        block = BasicBlock(
            id=len(self._blocks),
            start=start,
            size=size,
            first=first,
            count=count,
            buffer=self.buffer,
        )
        self._blocks.append(block)
        bisect.insort(self._starts, start)
        self._by_start[start] = block.id
        return block

    # ---------------------------
    # Lookups
    # ---------------------------

    def get(self, block_id: int) -> BasicBlock:
        return self._blocks[block_id]

    def exact(self, addr: int) -> Optional[BasicBlock]:
        block_id = self._by_start.get(addr)
        if block_id is None:
            return None
        return self._blocks[block_id]

    def floor(self, addr: int) -> Optional[BasicBlock]:
        """Block with the largest start <= addr, None if addr precedes all."""
        i = bisect.bisect_right(self._starts, addr)
        if i == 0:
            return None
        return self._blocks[self._by_start[self._starts[i - 1]]]

    def __iter__(self) -> Iterator[BasicBlock]:
        for start in self._starts:
            yield self._blocks[self._by_start[start]]

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, addr: int) -> bool:
        return addr in self._by_start
