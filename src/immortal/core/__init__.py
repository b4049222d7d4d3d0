"""Core engine: IR model, validation and persistence."""
