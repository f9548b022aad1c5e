"""Template injection and export package."""

from vingen.services.templates.xml_injection import (
    TemplateInjectionService,
    TemplateProcessingResult,
    count_markers,
    export_csv,
    export_text,
    extract_position_count,
    inject_codes,
    output_filename,
    validate_template_content,
)

__all__ = [
    "TemplateInjectionService",
    "TemplateProcessingResult",
    "count_markers",
    "export_csv",
    "export_text",
    "extract_position_count",
    "inject_codes",
    "output_filename",
    "validate_template_content",
]
