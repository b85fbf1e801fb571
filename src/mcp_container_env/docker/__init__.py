"""Docker host access."""
