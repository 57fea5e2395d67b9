"""Service layer: database-backed operations used by the API and CLI."""
