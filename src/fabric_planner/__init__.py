"""
fabric_planner

This package is a capacity planning engine for leaf spine switch fabrics.

We keep modules small and well separated:
core contains shared data structures, errors and serialization
fabric contains the switch catalog, topology sizing, external link allocation
and spine divisibility checks

Everything here is pure. No module performs I/O or keeps mutable state.
"""
