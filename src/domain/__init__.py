"""Log ingestion and player ranking domain modules."""
