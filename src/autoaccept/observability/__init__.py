"""
observability/__init__.py — Logging and audit trail
"""
