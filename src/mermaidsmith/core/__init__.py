"""Core primitives of the Mermaid transformation pipeline."""
