"""Ingestion layer.

This package turns raw broker messages into normalized state deltas:
payload decoding, per-topic payload models and the topic router.
"""

__all__: list[str] = []
