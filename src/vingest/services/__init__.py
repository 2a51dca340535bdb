"""Service layer for vingest: catalog client, resolver, storage and the ingestion pipeline."""
