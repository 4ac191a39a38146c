"""
Supplier Feed Hub
=================

Multi-tenant supplier feed ingestion, field mapping and catalog export service.
"""

__version__ = "0.1.0"
