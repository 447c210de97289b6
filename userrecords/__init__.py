"""User records service: HTTP router over a single-table key-value store."""
