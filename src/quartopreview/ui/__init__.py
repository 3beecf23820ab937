"""Desktop UI for the preview integration."""
