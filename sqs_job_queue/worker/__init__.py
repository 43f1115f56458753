"""
Worker module.
Consumes reserved messages and dispatches them to job handlers.
"""
