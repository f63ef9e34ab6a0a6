"""Server application."""
