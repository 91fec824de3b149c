"""HTTP API of the target agent."""
