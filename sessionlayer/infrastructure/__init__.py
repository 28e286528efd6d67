"""Infrastructure adapters: stores, persistence, logging."""
