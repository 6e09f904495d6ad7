"""
Core domain models, integer math primitives, and snapshot contracts.

This module contains the tranche-bond accounting engine, independent of
external systems (indexers, swap venues, transaction builders).
"""
