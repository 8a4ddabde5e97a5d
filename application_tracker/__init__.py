"""
Application Tracker: record job applications and derive dashboard statistics.
"""

__version__ = "0.1.0"
