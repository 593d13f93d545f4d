"""Unity Catalog metadata access."""
