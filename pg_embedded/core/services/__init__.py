"""Services — archive acquisition and extension management."""
