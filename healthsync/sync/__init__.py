"""Incremental sync between a health-data producer and the record store.

Server side:
    ingestion     : Per-record validation, storage and batch classification

Producer side:
    source        : HealthDataSource ABC and SourceBatch
    adapters/     : Concrete sources (JSON export)
    client        : httpx client for the /sync HTTP API
    anchors       : Producer-side anchor store backed by the server
    orchestrator  : Guarded sync runs, anchor advancement, run reports
    scheduler     : Periodic trigger producer
    config_loader : Load/validate sync_config.yaml
"""
