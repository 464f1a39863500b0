"""History queries."""
