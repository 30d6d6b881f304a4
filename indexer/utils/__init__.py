"""Utility modules for the indexer app."""
