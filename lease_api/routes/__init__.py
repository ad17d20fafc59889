"""HTTP routes, one module per caller area."""
