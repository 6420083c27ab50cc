"""
Core domain models, fixed-point primitives, errors and contracts.

Building blocks of the Orbital AMM engine that are independent of the curve
engines and of trade execution.
"""
