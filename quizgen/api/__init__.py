"""HTTP surface for the generation service."""
