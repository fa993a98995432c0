"""Application layer: DTOs, ports, policy services, and the upload use case."""
