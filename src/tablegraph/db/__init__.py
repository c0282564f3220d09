from tablegraph.db.memory import (
    InMemoryCall,
    InMemoryCondition,
    InMemoryQueryExecutor,
    InMemoryTable,
    parse_condition,
)

__all__ = [
    "InMemoryCall",
    "InMemoryCondition",
    "InMemoryQueryExecutor",
    "InMemoryTable",
    "parse_condition",
]
