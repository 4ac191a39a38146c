"""Export generation: column resolution, filters, renderers and the export service."""
from feedhub.services.exports.filters import ExportFilters, ExportRecord, apply_export_filters
from feedhub.services.exports.generators import (
    generate_csv,
    generate_json,
    generate_xml,
    render_rows,
    resolve_export_columns,
)
from feedhub.services.exports.service import (
    ExportService,
    build_export_filename,
    parse_profile_ref,
    render_export,
)
from feedhub.services.exports.templates import export_template

__all__ = [
    "ExportFilters",
    "ExportRecord",
    "ExportService",
    "apply_export_filters",
    "build_export_filename",
    "export_template",
    "generate_csv",
    "generate_json",
    "generate_xml",
    "parse_profile_ref",
    "render_export",
    "render_rows",
    "resolve_export_columns",
]
