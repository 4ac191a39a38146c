"""ORM models. Importing this package registers every table on ``Base.metadata``."""
from feedhub.db.models.category import Category, CategoryMapping
from feedhub.db.models.custom_field import FIELD_DATATYPES, CustomField, FieldMapping
from feedhub.db.models.export_profile import (
    DELIVERY_METHODS,
    OUTPUT_FORMATS,
    ExportHistory,
    ExportProfile,
)
from feedhub.db.models.ingestion import FeedError, FeedIngestion
from feedhub.db.models.product import ProductMapped, ProductRaw
from feedhub.db.models.supplier import SOURCE_TYPES, SYNC_STATUSES, Supplier
from feedhub.db.models.workspace import Workspace, WorkspaceMember

__all__ = [
    "Category",
    "CategoryMapping",
    "CustomField",
    "DELIVERY_METHODS",
    "ExportHistory",
    "ExportProfile",
    "FIELD_DATATYPES",
    "FeedError",
    "FeedIngestion",
    "FieldMapping",
    "OUTPUT_FORMATS",
    "ProductMapped",
    "ProductRaw",
    "SOURCE_TYPES",
    "SYNC_STATUSES",
    "Supplier",
    "Workspace",
    "WorkspaceMember",
]
