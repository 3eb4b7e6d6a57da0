"""
Shared utilities for plugin statistics: JSON serialization and configuration.
"""
