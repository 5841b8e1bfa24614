"""State layer.

This package owns the canonical in-memory view of each subscribed
``(collection, filter)`` pair and the reconciliation of pending local
edits against inbound snapshots. Feeds write into it; nothing else does.
"""
