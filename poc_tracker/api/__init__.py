"""
API Layer - REST endpoints over the completion engine.
"""
