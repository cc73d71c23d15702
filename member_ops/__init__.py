"""
member_ops

Adaptive cache and health-monitoring layer for the membership administration
backend.
"""

__version__ = "1.0.0"
