"""eventhub: websocket command server with a deduplicating browse ledger."""

__version__ = "1.0.0"
