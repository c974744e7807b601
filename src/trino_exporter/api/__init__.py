"""HTTP surface for Prometheus scrapes."""
