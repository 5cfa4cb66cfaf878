"""Remote store plugins."""
