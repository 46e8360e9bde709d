"""
Extraction strategies, one per listing system.

Adding a listing system = a strategy class + one line in strategies.registry.
"""
