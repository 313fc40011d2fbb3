"""GraphQL documents and endpoint helpers."""
