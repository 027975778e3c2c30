"""Static data shipped with the application."""
