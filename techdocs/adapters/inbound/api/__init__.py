"""HTTP API for the tech docs knowledge base."""
