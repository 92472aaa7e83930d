"""Infrastructure Layer - database engine, event channel, HTTP clients, logging.

Invariants:
    - External failures are mapped to BlogError subclasses before leaving this layer
"""
