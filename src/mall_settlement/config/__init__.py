"""Configuration - environment settings and business constants."""
