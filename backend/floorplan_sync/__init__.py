"""Floor plan marker synchronization service."""
