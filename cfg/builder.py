"""
Block builder: turns a decoded instruction stream into a control-flow graph.

Pass 1 (build_blocks) cuts the stream after every jump and links each
block to its lexical successor unless the jump was unconditional.
Pass 2 (cfg.resolver.resolve_jumps) attaches branch targets, splitting
blocks whose middle is jumped into.
"""

from typing import List, Optional, Sequence, Tuple

from cfg.graph import ControlFlowGraph
from cfg.resolver import resolve_jumps
from core.failures import BuildFailure, FailureKind
from core.ir import BasicBlock, Edge, EdgeKind, Instruction
from storage.block_store import BlockStore


def build_blocks(store: BlockStore) -> List[int]:
    """
    Partition store.buffer into maximal straight-line blocks.
    Returns the buffer indices of every jump, in stream order.
    """
    pending: List[int] = []
    prev: Optional[BasicBlock] = None
    first = 0
    size = 0
    count = 0

    for i, insn in enumerate(store.buffer):
        if count == 0:
            first = i
        size += insn.size
        count += 1
        if insn.is_jump:
            prev = _close_block(store, prev, first, size, count)
            pending.append(i)
            size = 0
            count = 0

    if count:
        _close_block(store, prev, first, size, count)

    return pending


def _close_block(
    store: BlockStore,
    prev: Optional[BasicBlock],
    first: int,
    size: int,
    count: int,
) -> BasicBlock:
    block = store.add_block(store.buffer[first].address, size, first, count)
    # prev always ends in a jump; a conditional one continues here when not taken
    if prev is not None and not prev.last.is_unconditional:
        prev.edges.append(Edge(block.id, EdgeKind.BRANCH_NOT_TAKEN))
    return block


def construct(
    instructions: Sequence[Instruction], base_address: int
) -> Tuple[Optional[ControlFlowGraph], Optional[BuildFailure]]:
    """
    Build a fully resolved graph or report why none can be built.
    Never returns a partial graph.
    """
    if not instructions:
        return None, BuildFailure(FailureKind.EMPTY_INPUT)

    store = BlockStore(tuple(instructions))
    pending = build_blocks(store)

    failure = resolve_jumps(store, pending)
    if failure is not None:
        return None, failure

    entry = store.exact(base_address)
    if entry is None:
        return None, BuildFailure(FailureKind.MISSING_ENTRY, base_address)

    return ControlFlowGraph(store, entry.id, base_address), None
