"""Infrastructure adapters: evidence storage and notification delivery."""
