"""
Core domain models, mathematical primitives, and invariants.

This module contains the foundational building blocks of position sizing
that are independent of external systems (exchanges, journals, storage).
"""
