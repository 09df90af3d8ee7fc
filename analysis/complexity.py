"""
Cyclomatic complexity of the part of a CFG reachable from its entry.
"""

from typing import Dict

from cfg.graph import ControlFlowGraph


def classify(m: int) -> str:
    if m <= 4:
        return "simple"
    if m <= 10:
        return "moderate"
    if m <= 20:
        return "complex"
    if m <= 50:
        return "very_complex"
    return "untestable"


def cyclomatic_complexity(graph: ControlFlowGraph) -> Dict:
    """
    M = E - N + 2P over reachable blocks, with P = 1 (one entry).
    Parallel edges (a conditional jump to its own fall-through block)
    count separately, as they are separate decisions.
    """
    n = 0
    e = 0
    for block in graph.walk():
        n += 1
        e += len(block.edges)

    m = e - n + 2
    return {
        "entry": graph.entry.start,
        "nodes": n,
        "edges": e,
        "complexity": m,
        "classification": classify(m),
    }
