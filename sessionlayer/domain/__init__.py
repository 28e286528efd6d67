"""Domain layer: session record, value objects, errors and ports.

No infrastructure imports live here.
"""
