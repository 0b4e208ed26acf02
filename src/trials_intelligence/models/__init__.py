"""Data models for Trials Intelligence."""
