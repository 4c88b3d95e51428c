"""Source generation for built apps.

Copies the base project template and writes the generated screen modules,
router tables and entry point configuration.
"""

from appbuilder.generator.entry_point import configure_app_entry_point
from appbuilder.generator.modules import (
    ModuleGenerationResult,
    generate_modules,
    validate_generated_modules,
)
from appbuilder.generator.routers import (
    RouterGenerationResult,
    generate_routers,
    validate_generated_routers,
)
from appbuilder.generator.template_copy import TemplateCopyResult, copy_base_template
from appbuilder.generator.templates import TemplateRenderer, to_component_name, to_file_name

__all__ = [
    "TemplateRenderer",
    "to_component_name",
    "to_file_name",
    "copy_base_template",
    "TemplateCopyResult",
    "generate_modules",
    "validate_generated_modules",
    "ModuleGenerationResult",
    "generate_routers",
    "validate_generated_routers",
    "RouterGenerationResult",
    "configure_app_entry_point",
]
