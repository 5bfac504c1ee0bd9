"""healthsync: incremental, idempotent sync of personal fitness data."""

__version__ = "0.1.0"
