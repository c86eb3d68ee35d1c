"""Configuration - pydantic-settings based application settings."""
