"""Ephemeral board: self-destructing posts and rooms."""
