"""Question generation pipeline."""
