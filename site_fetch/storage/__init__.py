"""site_fetch.storage: persistent snapshots of fetched pages."""

from .keyed_store import KeyedStore

__all__ = ["KeyedStore"]
