"""Infrastructure adapters: broker messaging, HTTP clients, stores, logging."""
