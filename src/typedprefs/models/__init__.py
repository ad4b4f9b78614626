"""Value kinds."""
