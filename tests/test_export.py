# tests/test_export.py

import json
import os

from analysis.complexity import classify, cyclomatic_complexity
from analysis.export import export_graph_json, graph_to_dict
from cfg.graph import ControlFlowGraph
from tests.conftest import assemble, cond, jump, plain


class TestComplexity:

    def test_single_branch(self, cmp_je_stream):
        graph = ControlFlowGraph.from_instructions(cmp_je_stream, 0x1000)
        result = cyclomatic_complexity(graph)
        assert result == {
            "entry": 0x1000,
            "nodes": 3,
            "edges": 3,
            "complexity": 2,
            "classification": "simple",
        }

    def test_straight_line(self):
        graph = ControlFlowGraph.from_instructions(assemble(0, plain(), plain()), 0)
        assert cyclomatic_complexity(graph)["complexity"] == 1

    def test_only_reachable_blocks_count(self):
        insns = assemble(0, plain(), jump(0x5), plain(), plain(), plain())
        graph = ControlFlowGraph.from_instructions(insns, 0)
        result = cyclomatic_complexity(graph)
        assert (result["nodes"], result["edges"]) == (2, 1)

    def test_classification_bands(self):
        assert classify(4) == "simple"
        assert classify(5) == "moderate"
        assert classify(11) == "complex"
        assert classify(21) == "very_complex"
        assert classify(51) == "untestable"


class TestExport:

    def test_graph_to_dict(self, cmp_je_stream):
        graph = ControlFlowGraph.from_instructions(cmp_je_stream, 0x1000)
        report = graph_to_dict(graph, source_path="code.bin")
        assert report["entry"] == "0x1000"
        assert report["meta"]["source_path"] == "code.bin"
        assert [b["addr_hex"] for b in report["blocks"]] == ["0x1000", "0x1005", "0x1007"]
        assert report["blocks"][0]["instructions"][1]["mnemonic"] == "je"
        assert report["edges"] == [
            {"src": "0x1000", "dst": "0x1005", "kind": "branch_not_taken"},
            {"src": "0x1000", "dst": "0x1007", "kind": "branch_taken"},
            {"src": "0x1005", "dst": "0x1007", "kind": "fallthrough"},
        ]
        summary = report["summary"]
        assert summary["total_blocks"] == 3
        assert summary["reachable_blocks"] == 3
        assert summary["total_instructions"] == 4

    def test_without_instructions(self):
        insns = assemble(0, cond(0x3), plain(), plain())
        graph = ControlFlowGraph.from_instructions(insns, 0)
        report = graph_to_dict(graph, include_instructions=False)
        assert all("instructions" not in b for b in report["blocks"])

    def test_export_writes_json(self, tmp_path, cmp_je_stream):
        graph = ControlFlowGraph.from_instructions(cmp_je_stream, 0x1000)
        out = tmp_path / "reports" / "cfg.json"
        path = export_graph_json(graph, str(out))
        assert path == os.path.abspath(str(out))
        data = json.loads(out.read_text())
        assert data["meta"]["tool"] == "cfgview"
        assert data["summary"]["complexity"]["complexity"] == 2
