"""Infrastructure layer - configuration, logging, HTTP clients, providers."""
