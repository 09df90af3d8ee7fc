"""
Graphviz (DOT) rendering of a control-flow graph.

Real blocks and edges are emitted in depth-first order from the entry,
followed by any block the entry cannot reach. An invisible chain
rank1 -> every block in address order keeps the layout sorted by address;
those edges carry style=invis and never a color.
"""

import re
from typing import Dict, Optional

from graphviz import Digraph

from cfg.graph import ControlFlowGraph
from core.ir import BasicBlock, EdgeKind

CHAIN_HEAD = "rank1"

DEFAULT_COLORS: Dict[EdgeKind, str] = {
    EdgeKind.BRANCH_TAKEN: "blue",
    EdgeKind.BRANCH_NOT_TAKEN: "red",
    EdgeKind.FALLTHROUGH: "gray",
}

_RECORD_SPECIAL = re.compile(r"([{}|<>])")


def colors_from_config(config: Dict) -> Dict[EdgeKind, str]:
    render = config.get("render", {})
    return {
        EdgeKind.BRANCH_TAKEN: render.get("taken_color", DEFAULT_COLORS[EdgeKind.BRANCH_TAKEN]),
        EdgeKind.BRANCH_NOT_TAKEN: render.get("not_taken_color", DEFAULT_COLORS[EdgeKind.BRANCH_NOT_TAKEN]),
        EdgeKind.FALLTHROUGH: render.get("fallthrough_color", DEFAULT_COLORS[EdgeKind.FALLTHROUGH]),
    }


def node_name(block: BasicBlock) -> str:
    return f"0x{block.start:x}"


def node_label(block: BasicBlock) -> str:
    lines = []
    for insn in block.instructions:
        text = _RECORD_SPECIAL.sub(r"\\\1", insn.text)
        lines.append(f"0x{insn.address:08x}: {text}\\l")
    return "".join(lines)


def build_digraph(
    graph: ControlFlowGraph,
    colors: Optional[Dict[EdgeKind, str]] = None,
    name: str = "disassembly",
) -> Digraph:
    palette = dict(DEFAULT_COLORS)
    palette.update(colors or {})

    dot = Digraph(name)
    dot.attr(rank="same", rankdir="TB")
    dot.node(CHAIN_HEAD, style="invis")

    prev = CHAIN_HEAD
    for block in graph.blocks:
        dot.edge(prev, node_name(block), style="invis")
        prev = node_name(block)

    emitted = set()

    def emit(block: BasicBlock) -> None:
        emitted.add(block.id)
        dot.node(
            node_name(block),
            label=node_label(block),
            shape="record",
            fontname="courier",
            pin="true",
        )
        for edge in block.edges:
            dst = graph.block(edge.target)
            dot.edge(node_name(block), node_name(dst), color=palette[edge.kind])

    graph.visit(emit)
    for block in graph.blocks:
        if block.id not in emitted:
            emit(block)

    return dot


def generate_dot(
    graph: ControlFlowGraph,
    colors: Optional[Dict[EdgeKind, str]] = None,
    name: str = "disassembly",
) -> str:
    return build_digraph(graph, colors, name).source
