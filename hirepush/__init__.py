"""Web push fan-out service for new-hire announcements."""
