"""User-facing interfaces for attachsync."""
