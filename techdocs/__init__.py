"""Tech docs knowledge base: hybrid retrieval and grounded answers."""

__version__ = "1.0.0"
