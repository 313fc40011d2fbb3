"""Ingestion layer.

This package contains the adapters that receive data from the developer tools
server (message subscription, snapshot poll) and hand normalized events and
snapshots to the state layer.
"""

__all__: list[str] = []
