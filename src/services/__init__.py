"""Supporting services for the analysis pipeline."""
