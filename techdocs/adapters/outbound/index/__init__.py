"""Qdrant chunk index with fielded keyword scoring."""
