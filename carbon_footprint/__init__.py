"""Carbon footprint calculator: emission factors, footprint engine and recommendations."""
