"""
Research platform backend for the customer-support ticket triage study.
"""

__version__ = "1.0.0"
