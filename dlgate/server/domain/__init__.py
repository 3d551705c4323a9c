"""Request handlers for the download gateway."""
