"""
autoaccept — rule engine that decides whether an agent's proposed operation
is auto-approved, refused, or handed to a human.
"""

__version__ = "1.0.0"
