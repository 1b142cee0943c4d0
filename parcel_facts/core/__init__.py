"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Default endpoints, logical layer names, unit conversions
- exceptions: Custom exception hierarchy
"""
