"""Core building blocks shared by every boundary."""
