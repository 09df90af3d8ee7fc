"""
Reasons a control-flow graph cannot be built.
Construction is all-or-nothing: any of these aborts the whole graph.
Indirect jumps are not failures and have no entry here.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class FailureKind(Enum):
    EMPTY_INPUT = auto()
    DECODE_FAILED = auto()
    MISSING_ENTRY = auto()
    UNKNOWN_TARGET = auto()
    INTER_OPCODE_JUMP = auto()


_MESSAGES = {
    FailureKind.EMPTY_INPUT: "no code to analyse",
    FailureKind.DECODE_FAILED: "decoder produced no instructions",
    FailureKind.MISSING_ENTRY: "no block starts at the base address",
    FailureKind.UNKNOWN_TARGET: "jump target outside every known block",
    FailureKind.INTER_OPCODE_JUMP: "jump target is not on an instruction boundary",
}


@dataclass(frozen=True)
class BuildFailure:
    kind: FailureKind
    address: Optional[int] = None
    # address of the jump instruction for target failures
    source: Optional[int] = None

    def describe(self) -> str:
        msg = _MESSAGES[self.kind]
        if self.address is not None:
            msg += f" (0x{self.address:x}"
            if self.source is not None:
                msg += f", from jump at 0x{self.source:x}"
            msg += ")"
        return msg
