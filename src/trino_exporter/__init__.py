"""Prometheus exporter for Trino clusters running on AWS EMR."""

__version__ = "0.1.0"
