"""Route Modules - one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Events are published only after the mutation committed

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""
