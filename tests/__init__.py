"""
Test suite for orbital-amm

Contains:
- tests/unit/          : Unit tests for individual modules
"""
