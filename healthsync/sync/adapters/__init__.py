"""Concrete producer-side health-data sources."""

from healthsync.sync.adapters.json_export import JsonExportSource

__all__ = ["JsonExportSource"]
