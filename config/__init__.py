"""Configuration package for the item analysis pipeline."""
