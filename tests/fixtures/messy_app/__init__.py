"""Component library with broken and conflicting modules."""
