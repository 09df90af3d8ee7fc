# storage - block store for graph construction; Neo4j sink lives in storage.neo4j_sink
from storage.block_store import BlockStore

__all__ = [
    "BlockStore",
]
