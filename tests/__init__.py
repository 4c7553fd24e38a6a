"""
Test suite for the fee-aware position sizer

Contains:
- tests/unit/          : Unit tests for individual modules
"""
