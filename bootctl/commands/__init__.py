"""bootctl commands."""
