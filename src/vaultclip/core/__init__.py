"""Core clipping API."""

from .clipper import Clipper, VaultWriter, extract_content, render_string, render_template

__all__ = ["Clipper", "VaultWriter", "extract_content", "render_string", "render_template"]
