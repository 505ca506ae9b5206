"""Terraform JSON configuration for AWS VPC peering driven by a YAML peering matrix."""

__version__ = "0.1.0"