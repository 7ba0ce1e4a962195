"""Core domain: models, ports and the ingestion pipeline."""
