"""Services: GEO retrieval, format detection and matrix ingestion."""
