"""Core domain: models, ports and encoders."""
