"""History services."""
