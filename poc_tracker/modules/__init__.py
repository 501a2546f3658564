"""
Modules - file ingestion adapters.
"""
