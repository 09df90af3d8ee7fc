# tests/conftest.py
"""
Helpers for writing instruction streams by hand.

assemble() lays instructions out back to back from a base address, so tests
only state sizes, mnemonics and jump targets.
"""

from typing import Dict, List

import pytest

from core.ir import EdgeKind, Instruction


def plain(size: int = 1, mnemonic: str = "nop", op_str: str = "") -> Dict:
    return {"size": size, "mnemonic": mnemonic, "op_str": op_str}


def cond(target: int, size: int = 2, mnemonic: str = "je") -> Dict:
    return {
        "size": size,
        "mnemonic": mnemonic,
        "op_str": hex(target),
        "is_jump": True,
        "target": target,
    }


def jump(target: int, size: int = 2) -> Dict:
    return {
        "size": size,
        "mnemonic": "jmp",
        "op_str": hex(target),
        "is_jump": True,
        "is_unconditional": True,
        "target": target,
    }


def indirect(size: int = 2, operand: str = "rax") -> Dict:
    return {
        "size": size,
        "mnemonic": "jmp",
        "op_str": operand,
        "is_jump": True,
        "is_unconditional": True,
    }


def assemble(base: int, *parts: Dict) -> List[Instruction]:
    out = []
    addr = base
    for part in parts:
        out.append(Instruction(address=addr, **part))
        addr += part["size"]
    return out


def edge_map(graph, block):
    """[(dst_start, kind), ...] in edge order."""
    return [(graph.block(e.target).start, e.kind) for e in block.edges]


def check_invariants(graph, instructions):
    blocks = graph.blocks
    starts = [b.start for b in blocks]
    assert starts == sorted(starts)
    assert sum(b.count for b in blocks) == len(instructions)

    # contiguous, non-overlapping cover of the scanned range
    assert blocks[0].start == instructions[0].address
    assert blocks[-1].end == instructions[-1].end
    for a, b in zip(blocks, blocks[1:]):
        assert a.end == b.start

    for b in blocks:
        insns = list(b.instructions)
        assert insns, f"empty block 0x{b.start:x}"
        assert insns[0].address == b.start
        assert sum(i.size for i in insns) == b.size
        for e in b.edges:
            assert graph.block(e.target) in blocks

    assert [b for b in blocks if b.start == graph.base_address] == [graph.entry]


# The cmp / je / mov / mov example, je jumping over the first mov.
@pytest.fixture
def cmp_je_stream():
    return assemble(
        0x1000,
        plain(3, "cmp", "eax, ebx"),
        cond(0x1007),
        plain(2, "mov", "eax, ecx"),
        plain(2, "mov", "eax, edx"),
    )


NT = EdgeKind.BRANCH_NOT_TAKEN
TAKEN = EdgeKind.BRANCH_TAKEN
FT = EdgeKind.FALLTHROUGH
