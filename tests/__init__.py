"""
Test suite for the tranche-bond engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
