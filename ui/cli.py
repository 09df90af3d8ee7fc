import argparse
import os
import platform
import shlex
import shutil
import sys
import traceback

from core.config import get_config, parse_address


def _parse_addr(text: str) -> int:
    """Parse a hex or decimal address string."""
    return parse_address(text)


def _safe_shlex_split(line: str):
    """shlex.split that doesn't crash on Windows unquoted backslashes."""
    try:
        return shlex.split(line, posix=(os.name != "nt"))
    except ValueError:
        return line.split()


def _print_banner():
    print()
    print("=" * 60)
    print("   cfgview - basic-block control-flow graphs for raw code")
    print(f"   Platform: {platform.system()} {platform.machine()}")
    print("   Version:  1.0.0")
    print("=" * 60)
    print()


def _print_help():
    print(
        "\nCommands:\n"
        "  load <file> [base]         Decode a raw code file and build its CFG\n"
        "  blocks                     List basic blocks in address order\n"
        "  insns <addr>               List instructions of the block covering addr\n"
        "  edges [addr]               Show edges (all, or from one block)\n"
        "  walk                       Dump reachable blocks in depth-first order\n"
        "  dot <path>                 Write the graph in DOT format\n"
        "  export <path>              Export the graph to a JSON report\n"
        "  complexity                 Show cyclomatic complexity\n"
        "  push [name]                Store the graph in Neo4j\n"
        "  status                     Show tool/service availability\n"
        "  config                     Show current configuration\n"
        "  help                       Show this help\n"
        "  quit / exit                Exit\n"
    )


def _check_tool_availability():
    """Check and report available tools (with timeouts to avoid hangs)."""
    checks = {}

    try:
        import capstone
        checks["capstone"] = True
        checks["capstone-version"] = ".".join(str(v) for v in capstone.cs_version()[:2])
    except ImportError:
        checks["capstone"] = False

    try:
        import r2pipe  # noqa: F401
        r2_path = get_config().get("tools", {}).get("r2_path") or "radare2"
        checks["r2pipe"] = True
        checks["radare2"] = bool(
            shutil.which(r2_path) or shutil.which("radare2") or shutil.which("r2")
        )
    except ImportError:
        checks["r2pipe"] = False
        checks["radare2"] = False

    # graphviz python package renders text; the dot binary is needed for images
    checks["graphviz-dot"] = bool(shutil.which("dot"))

    try:
        from neo4j import GraphDatabase as _GD
        cfg = get_config().get("neo4j", {})
        driver = _GD.driver(
            cfg.get("uri", "bolt://localhost:7687"),
            auth=(cfg.get("user", "neo4j"), cfg.get("password", "neo4j")),
            connection_timeout=3,
        )
        driver.verify_connectivity()
        driver.close()
        checks["neo4j"] = True
    except Exception:
        checks["neo4j"] = False

    return checks


def _read_binary(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def build_graph(path: str, base_address: int):
    """Read a raw code file and build its CFG. Returns None on failure."""
    from cfg.graph import ControlFlowGraph
    from decoders import create_decoder

    try:
        data = _read_binary(path)
    except OSError as e:
        print(f"[cfgview] Cannot read {path}: {e}")
        return None
    decoder = create_decoder(get_config())
    return ControlFlowGraph.create(data, base_address, decoder=decoder)


def dump_graph(graph, out=None):
    """Print every reachable block in depth-first order."""
    out = out or sys.stderr

    def _dump(block):
        out.write(f"> addr: 0x{block.start:x}\n")
        out.write(f"> size: {block.size}\n")
        out.write(f"> instruction count: {block.count}\n")
        for insn in block.instructions:
            out.write(f"0x{insn.address:x}:\t{insn.mnemonic}\t\t{insn.op_str}\n")
        out.write("\n")

    graph.visit(_dump)


def _write_dot(graph, path: str) -> str:
    from cfg.render import colors_from_config, generate_dot

    config = get_config()
    text = generate_dot(
        graph,
        colors=colors_from_config(config),
        name=config.get("render", {}).get("graph_name", "disassembly"),
    )
    abs_path = os.path.abspath(path)
    with open(abs_path, "w", encoding="utf-8") as f:
        f.write(text)
    return abs_path


# ─────────────────────────────────────────────────────────────
# Command handlers
# ─────────────────────────────────────────────────────────────


def _require_graph(state):
    graph = state.get("graph")
    if graph is None:
        print("No graph loaded. Use 'load <file>' first.")
    return graph


def _cmd_load(args, state):
    """Decode a raw code file and build its CFG."""
    if not args:
        print("Usage: load <file> [base]")
        return
    path = os.path.abspath(args[0])
    if not os.path.isfile(path):
        print(f"File not found: {path}")
        return
    base = state.get("base")
    if base is None:
        base = get_config().get("graph", {}).get("base_address", 0)
    if len(args) > 1:
        try:
            base = _parse_addr(args[1])
        except ValueError:
            print("Invalid base address.")
            return
    graph = build_graph(path, base)
    if graph is None:
        return
    state["graph"] = graph
    state["binary"] = path
    print(f"[cfgview] {len(graph)} blocks, {len(graph.instructions)} instructions "
          f"from {path} at 0x{base:x}.")


def _cmd_blocks(state):
    """List basic blocks in address order."""
    graph = _require_graph(state)
    if graph is None:
        return
    print(f"\n  {'Address':<20}{'Size':<8}{'Insns':<8}{'Edges'}")
    print("  " + "-" * 45)
    for block in graph.blocks:
        marker = " (entry)" if block.id == graph.entry.id else ""
        print(f"  0x{block.start:<18x}{block.size:<8}{block.count:<8}{len(block.edges)}{marker}")
    print(f"\n  Total: {len(graph)} block(s)\n")


def _cmd_insns(args, state):
    """List instructions of the block covering an address."""
    graph = _require_graph(state)
    if graph is None:
        return
    if not args:
        print("Usage: insns <addr>")
        return
    try:
        addr = _parse_addr(args[0])
    except ValueError:
        print("Invalid address.")
        return
    block = graph.find_block(addr)
    if block is None:
        print(f"No block covers 0x{addr:x}.")
        return
    for insn in block.instructions:
        print(f"  0x{insn.address:x}  {insn.mnemonic:<8} {insn.op_str}")


def _cmd_edges(args, state):
    """Show CFG edges."""
    graph = _require_graph(state)
    if graph is None:
        return
    src_filter = None
    if args:
        try:
            src_filter = graph.find_block(_parse_addr(args[0]))
        except ValueError:
            print("Invalid address.")
            return
        if src_filter is None:
            print(f"No block covers {args[0]}.")
            return
    shown = 0
    for src, edge in graph.edges():
        if src_filter is not None and src.id != src_filter.id:
            continue
        dst = graph.block(edge.target)
        print(f"  0x{src.start:x} -> 0x{dst.start:x}  [{edge.kind.value}]")
        shown += 1
    if not shown:
        print("No edges.")


def _cmd_walk(state):
    graph = _require_graph(state)
    if graph is not None:
        dump_graph(graph, sys.stdout)


def _cmd_dot(args, state):
    graph = _require_graph(state)
    if graph is None:
        return
    if not args:
        print("Usage: dot <output_path>")
        return
    try:
        print(f"[cfgview] DOT written to: {_write_dot(graph, args[0])}")
    except OSError as e:
        print(f"[cfgview] DOT export failed: {e}")


def _cmd_export(args, state):
    """Export the graph to JSON."""
    from analysis.export import export_graph_json

    graph = _require_graph(state)
    if graph is None:
        return
    if not args:
        print("Usage: export <output_path>")
        return
    try:
        abs_path = export_graph_json(graph, args[0], source_path=state.get("binary"))
        print(f"[cfgview] Graph exported to: {abs_path}")
    except OSError as e:
        print(f"[cfgview] Export failed: {e}")


def _cmd_complexity(state):
    """Show cyclomatic complexity metrics."""
    from analysis.complexity import cyclomatic_complexity

    graph = _require_graph(state)
    if graph is None:
        return
    result = cyclomatic_complexity(graph)
    print(f"\n  Cyclomatic Complexity from 0x{result['entry']:x}:")
    print(f"    Nodes (basic blocks): {result['nodes']}")
    print(f"    Edges:                {result['edges']}")
    print(f"    Complexity (M):       {result['complexity']}")
    print(f"    Classification:       {result['classification']}")
    print()


def _cmd_push(args, state):
    """Store the graph in Neo4j."""
    from storage.neo4j_sink import Neo4jSink

    graph = _require_graph(state)
    if graph is None:
        return
    name = args[0] if args else os.path.basename(state.get("binary") or "cfg")
    sink = None
    try:
        sink = Neo4jSink.from_config(get_config())
        sink.push(graph, name)
    except Exception as e:
        print(f"[cfgview] Neo4j push failed: {e}")
    finally:
        if sink is not None:
            sink.close()


def _cmd_status():
    """Show tool/service availability."""
    avail = _check_tool_availability()
    print("\nTool/Service Status:")
    for tool, ok in sorted(avail.items()):
        if not isinstance(ok, bool):
            print(f"      {tool}: {ok}")
            continue
        status = "OK" if ok else "NOT FOUND"
        marker = "+" if ok else "-"
        print(f"  [{marker}] {tool}: {status}")
    print()


def _cmd_config():
    """Show current configuration."""
    config = get_config()
    print("\nCurrent Configuration:")
    for section, values in config.items():
        print(f"  [{section}]")
        if isinstance(values, dict):
            for k, v in values.items():
                display = "****" if "password" in k.lower() else v
                print(f"    {k}: {display}")
        else:
            print(f"    {values}")
    print()


# ─────────────────────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────────────────────


def run_once(input_path: str, output_path=None, base_address=None) -> int:
    """Build, dump to stderr, optionally write DOT. Returns an exit code."""
    if base_address is None:
        base_address = get_config().get("graph", {}).get("base_address", 0)
    graph = build_graph(input_path, base_address)
    if graph is None:
        return 1
    dump_graph(graph, sys.stderr)
    if output_path:
        try:
            _write_dot(graph, output_path)
        except OSError as e:
            print(f"[cfgview] Cannot write {output_path}: {e}")
            return 1
    return 0


def repl(state=None):
    state = state if state is not None else {"graph": None, "binary": None}
    print("Type 'help' for commands.\n")

    while True:
        try:
            line = input("cfg> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue
        if line in {"exit", "quit"}:
            break
        if line == "help":
            _print_help()
            continue

        parts = _safe_shlex_split(line)
        if not parts:
            continue
        cmd = parts[0].lower()
        args = parts[1:]

        try:
            if cmd == "load":
                _cmd_load(args, state)
            elif cmd == "blocks":
                _cmd_blocks(state)
            elif cmd == "insns":
                _cmd_insns(args, state)
            elif cmd == "edges":
                _cmd_edges(args, state)
            elif cmd == "walk":
                _cmd_walk(state)
            elif cmd == "dot":
                _cmd_dot(args, state)
            elif cmd == "export":
                _cmd_export(args, state)
            elif cmd == "complexity":
                _cmd_complexity(state)
            elif cmd == "push":
                _cmd_push(args, state)
            elif cmd == "status":
                _cmd_status()
            elif cmd == "config":
                _cmd_config()
            else:
                print(f"Unknown command: '{cmd}'. Type 'help' for usage.")
        except Exception as e:
            print(f"[cfgview] Command error: {e}")
            traceback.print_exc()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="cfgview",
        description="Build a basic-block control-flow graph from raw machine code",
    )
    parser.add_argument("-i", "--input", help="raw code file; omit for the interactive shell")
    parser.add_argument("-o", "--output", help="write the graph in DOT format")
    parser.add_argument("-b", "--base", type=_parse_addr, default=None,
                        help="address of the first byte (default from config, 0)")
    args = parser.parse_args(argv)

    if args.input:
        return run_once(args.input, args.output, args.base)

    _print_banner()
    state = {"graph": None, "binary": None}
    if args.base is not None:
        state["base"] = args.base
    repl(state)
    return 0


if __name__ == "__main__":
    sys.exit(main())
