"""Infrastructure layer: ports and their adapters."""
