"""History model construction."""
