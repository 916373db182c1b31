"""Core data structures: mesh, regions, parameters, quantities, registry."""
