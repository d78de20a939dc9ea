"""Reference block library."""
