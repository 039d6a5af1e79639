"""Text generation adapters."""
