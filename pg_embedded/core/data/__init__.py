"""Static data shared across the package."""
