"""Ingestion layer.

This package contains the source adapters that read JSON/CSV feeds, the
watcher that schedules poll reloads, and the hub that serializes every
reading into the time series store.
"""

__all__: list[str] = []
