"""
Export a control-flow graph to structured JSON for reporting and interoperability.
"""

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from analysis.complexity import cyclomatic_complexity
from cfg.graph import ControlFlowGraph


def graph_to_dict(
    graph: ControlFlowGraph,
    source_path: Optional[str] = None,
    include_instructions: bool = True,
) -> Dict[str, Any]:
    """
    Plain-data view of the graph.

    Blocks are listed in address order; edges keep their per-block order and
    carry their kind. Addresses are emitted both as integers and hex strings.
    """
    report: Dict[str, Any] = {
        "meta": {
            "tool": "cfgview",
            "version": "1.0.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source_path": source_path,
            "base_address": graph.base_address,
        },
        "entry": f"0x{graph.entry.start:x}",
        "blocks": [],
        "edges": [],
    }

    for block in graph.blocks:
        entry: Dict[str, Any] = {
            "addr": block.start,
            "addr_hex": f"0x{block.start:x}",
            "size": block.size,
            "instruction_count": block.count,
        }
        if include_instructions:
            entry["instructions"] = [
                {
                    "addr": f"0x{insn.address:x}",
                    "size": insn.size,
                    "mnemonic": insn.mnemonic,
                    "operands": insn.op_str,
                }
                for insn in block.instructions
            ]
        report["blocks"].append(entry)

        for edge in block.edges:
            report["edges"].append({
                "src": f"0x{block.start:x}",
                "dst": f"0x{graph.block(edge.target).start:x}",
                "kind": edge.kind.value,
            })

    reachable = sum(1 for _ in graph.walk())
    report["summary"] = {
        "total_blocks": len(graph),
        "reachable_blocks": reachable,
        "total_edges": len(report["edges"]),
        "total_instructions": len(graph.instructions),
        "complexity": cyclomatic_complexity(graph),
    }
    return report


def export_graph_json(
    graph: ControlFlowGraph,
    output_path: str,
    source_path: Optional[str] = None,
    include_instructions: bool = True,
) -> str:
    """
    Write graph_to_dict() to output_path, creating parent directories.

    Returns:
        The absolute path of the written report file.
    """
    report = graph_to_dict(graph, source_path, include_instructions)

    abs_path = os.path.abspath(output_path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    with open(abs_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, default=str)

    return abs_path
