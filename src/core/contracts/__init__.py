"""
Contract Validation Module

JSON Schema контракты сырых snapshot'ов индексатора.
"""

from .validators import BOND_SNAPSHOT, SchemaLoader, SnapshotContract, validate_bond_snapshot

__all__ = [
    "SchemaLoader",
    "SnapshotContract",
    "BOND_SNAPSHOT",
    "validate_bond_snapshot",
]
