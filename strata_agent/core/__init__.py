"""Configuration and logging shared by every strata-agent module."""
