from neo4j import GraphDatabase

from cfg.graph import ControlFlowGraph


class Neo4jSink:
    """
    Persists a built CFG into Neo4j.
    Creates (:CFG {name}), (:BasicBlock {cfg, addr}) and (:Instruction {cfg, addr})
    nodes with CONTAINS / IN relationships, and one FLOW relationship per
    edge carrying its kind and position in the block's edge list.
    """

    def __init__(self, uri, user, password, database="neo4j", driver=None):
        self.driver = driver if driver is not None else GraphDatabase.driver(uri, auth=(user, password))
        self.database = database

    @classmethod
    def from_config(cls, config):
        cfg = config.get("neo4j", {})
        return cls(
            cfg.get("uri", "bolt://127.0.0.1:7687"),
            cfg.get("user", "neo4j"),
            cfg.get("password", "neo4j"),
            cfg.get("database", "neo4j"),
        )

    def session(self):
        return self.driver.session(database=self.database)

    def close(self):
        self.driver.close()

    # ---------------------------
    # Writes
    # ---------------------------

    def clear(self, name: str):
        query = """
        MATCH (n {cfg:$name})
        DETACH DELETE n
        """
        with self.session() as session:
            session.execute_write(lambda tx: tx.run(query, name=name))
            session.execute_write(
                lambda tx: tx.run("MATCH (g:CFG {name:$name}) DETACH DELETE g", name=name)
            )

    def push(self, graph: ControlFlowGraph, name: str) -> dict:
        """Replace any graph stored under name with this one."""
        blocks = [
            {
                "addr": b.start,
                "size": b.size,
                "insn_count": b.count,
                "entry": b.id == graph.entry.id,
            }
            for b in graph.blocks
        ]
        insns = [
            {
                "bb_addr": b.start,
                "addr": i.address,
                "mnemonic": i.mnemonic,
                "operands": i.op_str,
            }
            for b in graph.blocks
            for i in b.instructions
        ]
        edges = [
            {
                "src": src.start,
                "dst": graph.block(edge.target).start,
                "kind": edge.kind.value,
                "order": order,
            }
            for src in graph.blocks
            for order, edge in enumerate(src.edges)
        ]

        self.clear(name)
        with self.session() as session:
            session.execute_write(lambda tx: tx.run(
                """
                MERGE (g:CFG {name:$name})
                SET g.base_address = $base
                WITH g
                UNWIND $blocks AS blk
                MERGE (b:BasicBlock {cfg:$name, addr:blk.addr})
                SET b.size = blk.size, b.insn_count = blk.insn_count, b.entry = blk.entry
                MERGE (g)-[:CONTAINS]->(b)
                """,
                name=name, base=graph.base_address, blocks=blocks,
            ))
            session.execute_write(lambda tx: tx.run(
                """
                UNWIND $insns AS ins
                MATCH (b:BasicBlock {cfg:$name, addr:ins.bb_addr})
                MERGE (i:Instruction {cfg:$name, addr:ins.addr})
                SET i.mnemonic = ins.mnemonic, i.operands = ins.operands
                MERGE (b)-[:IN]->(i)
                """,
                name=name, insns=insns,
            ))
            session.execute_write(lambda tx: tx.run(
                """
                UNWIND $edges AS e
                MATCH (a:BasicBlock {cfg:$name, addr:e.src}), (b:BasicBlock {cfg:$name, addr:e.dst})
                CREATE (a)-[:FLOW {kind:e.kind, order:e.order}]->(b)
                """,
                name=name, edges=edges,
            ))

        print(f"[Neo4jSink] Stored '{name}': {len(blocks)} blocks, "
              f"{len(edges)} edges, {len(insns)} instructions.")
        return {"blocks": len(blocks), "edges": len(edges), "instructions": len(insns)}

    # ---------------------------
    # Queries
    # ---------------------------

    def fetch_flow_edges(self, name: str):
        query = """
        MATCH (a:BasicBlock {cfg:$name})-[r:FLOW]->(b:BasicBlock {cfg:$name})
        RETURN a.addr AS src, b.addr AS dst, r.kind AS kind
        ORDER BY a.addr, r.order
        """
        with self.session() as session:
            return session.execute_read(
                lambda tx: [(r["src"], r["dst"], r["kind"]) for r in tx.run(query, name=name)]
            )
