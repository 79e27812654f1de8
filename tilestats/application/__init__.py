"""Application layer: DTOs, ports, resolution services, and use cases."""
