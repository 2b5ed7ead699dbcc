"""Clipper facade: extraction and rendering entry points."""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol, Union

from ..exceptions import RenderError
from ..models.clip import ClipRequest, ClipResult, ClipVariables, Highlight
from ..models.config import ClipperSettings
from ..models.template import Template, TemplateBehavior
from ..naming import finalize_note_name
from ..rendering.engine import TemplateEngine, Variables, template_variables
from ..rendering.engine import render_string as _render_string
from ..rendering.frontmatter import FrontmatterBuilder
from ..variables import VariableBuilder

logger = logging.getLogger(__name__)


class VaultWriter(Protocol):
    """
    Protocol for handing a clip to a notes vault.

    Writers own file naming (adding ``.md``), folder creation and the
    merge policy named by ``request.behavior``.
    """

    def write(self, request: ClipRequest) -> None:
        ...


def fallback_body(title: Any, content: Any) -> str:
    """The unformatted note used when a template cannot be rendered."""
    return f"# {title or ''}\n\n{content or ''}"


class Clipper:
    """
    Primary API for clipping a page into a note.

    Wraps the extraction pipeline and the template renderer, and turns a
    template plus a variable bag into a :class:`ClipRequest`. Rendering
    errors never escape :meth:`build_clip_request`; the request then
    carries an unformatted title and content body instead.

    Example:
        clipper = Clipper(ClipperSettings(default_vault="Notes"))
        variables = clipper.extract_content(html, "https://example.com/post")
        result = clipper.build_clip_request(template, variables)
        if result.used_fallback:
            print(f"Template failed: {result.error}")
        writer.write(result.request)
    """

    def __init__(
        self,
        settings: Optional[ClipperSettings] = None,
        builder: Optional[VariableBuilder] = None,
        frontmatter: Optional[FrontmatterBuilder] = None,
    ):
        """
        Initialize the clipper.

        Args:
            settings: Clipper settings (defaults apply when omitted)
            builder: Variable bag builder (built from ``settings.extraction`` when omitted)
            frontmatter: Frontmatter builder
        """
        self.settings = settings or ClipperSettings()
        self._builder = builder or VariableBuilder.from_config(self.settings.extraction)
        self._frontmatter = frontmatter or FrontmatterBuilder()

    def extract_content(
        self,
        html: Union[str, bytes],
        url: str,
        *,
        selection_html: str = "",
        highlights: Iterable[Highlight] = (),
        include_full_html: bool = False,
        now: Optional[datetime] = None,
    ) -> ClipVariables:
        """
        Extract a page into a variable bag.

        Raises:
            ExtractionError: If no content could be derived
        """
        return self._builder.build(
            html,
            url,
            selection_html=selection_html,
            highlights=highlights,
            include_full_html=include_full_html,
            now=now,
        )

    def render_string(self, template_string: str, variables: Variables) -> str:
        """
        Render one template string (a note name or property value).

        Raises:
            RenderError: If the template cannot be evaluated
        """
        return _render_string(template_string, variables)

    def render_template(self, template: Template, variables: Variables) -> str:
        """
        Render a full note: frontmatter block (if any) and body.

        Raises:
            RenderError: If the body or a property cannot be evaluated
        """
        engine = TemplateEngine(variables)
        frontmatter = self._frontmatter.build(template.properties, engine)
        return frontmatter.block + engine.render(template.note_content_format)

    def resolve_vault(self, template: Optional[Template], default_vault: Optional[str] = None) -> Optional[str]:
        """Template override, then the given default, then settings; empty means none."""
        if template is not None and template.vault:
            return template.vault
        return default_vault or self.settings.default_vault or None

    def build_clip_request(
        self,
        template: Optional[Template],
        variables: Variables,
        default_vault: Optional[str] = None,
    ) -> ClipResult:
        """
        Render a template into the request handed to the vault writer.

        Args:
            template: Template to render, or ``None`` for a plain clip
            variables: Variable bag
            default_vault: Vault used when the template names none
                (falls back to ``settings.default_vault``)

        Returns:
            The request, plus the render error if the fallback body was used
        """
        values = template_variables(variables)
        title = values.get("title") or ""
        default_name = values.get("noteName") or title
        vault = self.resolve_vault(template, default_vault)

        if template is None:
            body = fallback_body(title, values.get("content"))
            url = values.get("url")
            if url:
                body += f"\n\nSource: {url}"
            request = ClipRequest(
                note_name=finalize_note_name(str(default_name)),
                content=body,
                vault=vault,
                behavior=TemplateBehavior.CREATE,
            )
            return ClipResult(request=request)

        engine = TemplateEngine(values)
        try:
            frontmatter = self._frontmatter.build(template.properties, engine)
            content = frontmatter.block + engine.render(template.note_content_format)
            note_name = finalize_note_name(engine.render(template.note_name_format), fallback=str(default_name))
        except RenderError as e:
            logger.warning(f"Template {template.name!r} failed to render, using plain note: {e}")
            request = ClipRequest(
                note_name=finalize_note_name(str(default_name)),
                content=fallback_body(title, values.get("content")),
                path=template.path,
                vault=vault,
                behavior=template.behavior,
            )
            return ClipResult(request=request, error=e)

        request = ClipRequest(
            note_name=note_name,
            content=content,
            path=template.path,
            vault=vault,
            behavior=template.behavior,
            properties=frontmatter.values,
        )
        logger.debug(f"Built clip request {request.note_name!r} ({template.behavior.value})")
        return ClipResult(request=request)

    def clip(
        self,
        html: Union[str, bytes],
        url: str,
        template: Optional[Template] = None,
        **extract_options: Any,
    ) -> ClipResult:
        """Extract a page and build its clip request in one call."""
        variables = self.extract_content(html, url, **extract_options)
        return self.build_clip_request(template, variables)


def extract_content(html: Union[str, bytes], url: str) -> ClipVariables:
    """Extract a page with default settings. Raises ``ExtractionError``."""
    return Clipper().extract_content(html, url)


def render_template(template: Template, variables: Variables) -> str:
    """Render a full note with default settings. Raises ``RenderError``."""
    return Clipper().render_template(template, variables)


def render_string(template_string: str, variables: Variables) -> str:
    """Render one template string. Raises ``RenderError``."""
    return _render_string(template_string, variables)
