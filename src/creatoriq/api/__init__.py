"""HTTP surface for the analysis services."""
