"""Per-target check workflow."""
