"""HTTP API for the carbon footprint calculator."""
