"""Business logic services.

This package contains the workflow editing services.
"""
