# cfg - basic-block graph construction, traversal and rendering
from cfg.graph import ControlFlowGraph
from cfg.builder import build_blocks, construct
from cfg.resolver import resolve_jumps, split_block
from cfg.render import generate_dot

__all__ = [
    "ControlFlowGraph",
    "build_blocks",
    "construct",
    "resolve_jumps",
    "split_block",
    "generate_dot",
]
