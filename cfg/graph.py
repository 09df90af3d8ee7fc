from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Sequence, Set, Tuple

from core.failures import BuildFailure, FailureKind
from core.ir import BasicBlock, Edge, Instruction
from storage.block_store import BlockStore

if TYPE_CHECKING:
    from decoders import Decoder


class ControlFlowGraph:
    """
    Basic-block graph of one linear code region, entered at base_address.
    Owns its blocks and the decoded instruction buffer. Read-only once
    built; the only state that changes afterwards is the traversal epoch.
    """

    def __init__(self, store: BlockStore, entry_id: int, base_address: int):
        self._store = store
        self._entry_id = entry_id
        self.base_address = base_address
        self._epoch = 0

    # ---------------------------
    # Construction
    # ---------------------------

    @classmethod
    def create(
        cls, data: bytes, base_address: int, decoder: Optional["Decoder"] = None
    ) -> Optional["ControlFlowGraph"]:
        """Decode raw code at base_address and build its graph, or None."""
        if not data:
            _report(BuildFailure(FailureKind.EMPTY_INPUT))
            return None

        if decoder is None:
            from core.config import get_config
            from decoders import create_decoder
            decoder = create_decoder(get_config())

        instructions = decoder.decode(data, base_address)
        if not instructions:
            _report(BuildFailure(FailureKind.DECODE_FAILED, base_address))
            return None

        return cls.from_instructions(instructions, base_address)

    @classmethod
    def from_instructions(
        cls, instructions: Sequence[Instruction], base_address: int
    ) -> Optional["ControlFlowGraph"]:
        from cfg.builder import construct

        graph, failure = construct(instructions, base_address)
        if failure is not None:
            _report(failure)
            return None
        return graph

    # ---------------------------
    # Accessors
    # ---------------------------

    @property
    def entry(self) -> BasicBlock:
        return self._store.get(self._entry_id)

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def instructions(self) -> Sequence[Instruction]:
        return self._store.buffer

    @property
    def blocks(self) -> List[BasicBlock]:
        """All blocks in ascending address order."""
        return list(self._store)

    def block(self, block_id: int) -> BasicBlock:
        return self._store.get(block_id)

    def block_at(self, addr: int) -> Optional[BasicBlock]:
        return self._store.exact(addr)

    def find_block(self, addr: int) -> Optional[BasicBlock]:
        """Block whose byte range covers addr."""
        block = self._store.floor(addr)
        if block is None or not block.contains(addr):
            return None
        return block

    def successors(self, block: BasicBlock) -> List[BasicBlock]:
        return [self._store.get(e.target) for e in block.edges]

    def edges(self) -> Iterator[Tuple[BasicBlock, Edge]]:
        for block in self._store:
            for edge in block.edges:
                yield block, edge

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self._store)

    # ---------------------------
    # Traversal
    # ---------------------------

    def walk(self) -> Iterator[BasicBlock]:
        """
        Depth-first pre-order over blocks reachable from the entry.
        Successors are taken in edge order. Uses its own stack and visited
        set, so walks can be nested or interleaved.
        """
        self._epoch += 1
        return self._dfs()

    def _dfs(self) -> Iterator[BasicBlock]:
        visited: Set[int] = set()
        stack = [self._entry_id]
        while stack:
            block_id = stack.pop()
            if block_id in visited:
                continue
            visited.add(block_id)
            block = self._store.get(block_id)
            yield block
            stack.extend(reversed(block.successors()))

    def visit(self, visitor: Callable[[BasicBlock], None]) -> None:
        for block in self.walk():
            visitor(block)


def _report(failure: BuildFailure) -> None:
    print(f"[CFG] Construction failed: {failure.describe()}")
