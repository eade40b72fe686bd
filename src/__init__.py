"""Wardrobe item analysis pipeline."""
