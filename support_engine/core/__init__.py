"""Turn ingestion entry points."""
