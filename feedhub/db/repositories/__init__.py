"""Repositories wrapping an AsyncSession, one per aggregate."""
from feedhub.db.repositories.categories_repo import CategoriesRepository
from feedhub.db.repositories.exports_repo import ExportsRepository
from feedhub.db.repositories.fields_repo import FieldMappingsRepository, FieldsRepository
from feedhub.db.repositories.ingestions_repo import IngestionsRepository
from feedhub.db.repositories.products_repo import ProductsRepository
from feedhub.db.repositories.suppliers_repo import SuppliersRepository
from feedhub.db.repositories.workspace_repo import WorkspaceRepository

__all__ = [
    "CategoriesRepository",
    "ExportsRepository",
    "FieldMappingsRepository",
    "FieldsRepository",
    "IngestionsRepository",
    "ProductsRepository",
    "SuppliersRepository",
    "WorkspaceRepository",
]
