"""Template rendering for vaultclip (interpolation, filters, blocks, frontmatter)."""

from .engine import TemplateEngine, is_truthy, render_string
from .filters import FILTERS, apply_chain, register_filter, stringify
from .frontmatter import Frontmatter, FrontmatterBuilder, escape_yaml_value
from .prompts import (
    PromptRequest,
    PromptResolver,
    apply_prompt_responses,
    collect_prompts,
    render_with_prompts,
)

__all__ = [
    # Engine
    "TemplateEngine",
    "is_truthy",
    "render_string",
    # Filters
    "FILTERS",
    "apply_chain",
    "register_filter",
    "stringify",
    # Frontmatter
    "Frontmatter",
    "FrontmatterBuilder",
    "escape_yaml_value",
    # Prompts
    "PromptRequest",
    "PromptResolver",
    "apply_prompt_responses",
    "collect_prompts",
    "render_with_prompts",
]
