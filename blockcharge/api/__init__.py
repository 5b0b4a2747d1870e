"""HTTP API for the service-charge core."""
