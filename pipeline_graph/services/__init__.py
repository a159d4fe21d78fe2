"""Business logic services.

This package contains the pipeline graph engine services.
"""
