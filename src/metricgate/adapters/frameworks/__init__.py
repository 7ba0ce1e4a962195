"""Framework adapters for the HTTP surface."""
