"""Services Layer - the client shell: store, REST commands, sync client, notifications.

Invariants:
    - Every state change goes through PostsStore.dispatch
    - IO reaches these modules only through the protocols in core/repository_protocols.py
"""
