"""Adapters connecting the transformer to concrete rendering backends."""
