"""Subject Bot systems."""
