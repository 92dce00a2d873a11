"""Transform factories for Hierarchy Publisher."""
