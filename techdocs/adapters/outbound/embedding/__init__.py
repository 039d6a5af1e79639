"""Sentence-transformers embedding adapter."""
