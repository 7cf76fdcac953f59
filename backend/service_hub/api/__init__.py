"""HTTP API layer: dependencies and route groups."""
