"""Alert notifications."""
