"""Step progression and progress tracking."""
