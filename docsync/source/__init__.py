"""Read-only clients for remote documentation repositories."""
