"""Core domain: models, services, engine and infrastructure."""
