"""Runner client adapters.

Implementations support two execution strategies:
- CLI (one runner process per call)
- Server (one long-lived runner process driven over a websocket)
"""
