from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence


class EdgeKind(Enum):
    FALLTHROUGH = "fallthrough"
    BRANCH_TAKEN = "branch_taken"
    BRANCH_NOT_TAKEN = "branch_not_taken"


@dataclass(frozen=True)
class Instruction:
    """
    One decoded machine instruction.
    target is the absolute jump destination when the sole operand is an
    immediate, None for indirect transfers and non-jumps.
    """
    address: int
    size: int
    mnemonic: str
    op_str: str = ""
    is_jump: bool = False
    is_unconditional: bool = False
    target: Optional[int] = None

    @property
    def end(self) -> int:
        return self.address + self.size

    @property
    def text(self) -> str:
        if self.op_str:
            return f"{self.mnemonic} {self.op_str}"
        return self.mnemonic


@dataclass(frozen=True)
class Edge:
    target: int  # block id in the owning graph
    kind: EdgeKind


@dataclass
class BasicBlock:
    """
    Straight-line run of instructions [first, first + count) inside the
    shared instruction buffer, covering bytes [start, start + size).
    """
    id: int
    start: int
    size: int
    first: int
    count: int
    buffer: Sequence[Instruction] = field(repr=False, compare=False, default=())
    edges: List[Edge] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.start + self.size

    @property
    def instructions(self) -> Sequence[Instruction]:
        return self.buffer[self.first:self.first + self.count]

    @property
    def last(self) -> Instruction:
        return self.buffer[self.first + self.count - 1]

    def contains(self, addr: int) -> bool:
        return self.start <= addr < self.end

    def successors(self) -> List[int]:
        return [e.target for e in self.edges]
