"""Socratic dialogue sessions."""
