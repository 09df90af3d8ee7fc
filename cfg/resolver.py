from typing import Iterable, Optional

from core.failures import BuildFailure, FailureKind
from core.ir import BasicBlock, Edge, EdgeKind
from storage.block_store import BlockStore


def resolve_jumps(store: BlockStore, pending: Iterable[int]) -> Optional[BuildFailure]:
    """
    Attach a BRANCH_TAKEN edge for every direct jump, in stream order.
    Each jump sees the graph as left by the previous one, so a target that
    was already split off is found by exact match instead of split again.
    Indirect jumps (no immediate target) add nothing.
    """
    for index in pending:
        jump = store.buffer[index]
        target_addr = jump.target
        if target_addr is None:
            continue

        target = store.floor(target_addr)
        if target is None or not target.contains(target_addr):
            return BuildFailure(FailureKind.UNKNOWN_TARGET, target_addr, jump.address)

        if target.start != target_addr:
            target = split_block(store, target, target_addr)
            if target is None:
                return BuildFailure(
                    FailureKind.INTER_OPCODE_JUMP, target_addr, jump.address
                )

        # looked up after the split: the jump may live in the new tail
        source = store.floor(jump.address)
        source.edges.append(Edge(target.id, EdgeKind.BRANCH_TAKEN))

    return None


def split_block(store: BlockStore, block: BasicBlock, addr: int) -> Optional[BasicBlock]:
    """
    Cut block in two at instruction address addr.
    The head keeps its id and start and falls through to the new tail;
    the tail takes over every edge the block had.
    Returns the tail, or None when addr is not an instruction boundary.
    """
    offset = None
    for i in range(1, block.count):
        insn_addr = store.buffer[block.first + i].address
        if insn_addr == addr:
            offset = i
            break
        if insn_addr > addr:
            break
    if offset is None:
        return None

    tail = store.add_block(addr, block.end - addr, block.first + offset, block.count - offset)
    tail.edges = block.edges
    block.edges = [Edge(tail.id, EdgeKind.FALLTHROUGH)]
    block.size = addr - block.start
    block.count = offset
    return tail
