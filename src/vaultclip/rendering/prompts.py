"""LLM prompt markers: collection, async resolution and substitution.

A template can carry prompt markers such as ``{{"summarize in one line"}}``
(optionally followed by a filter chain). The engine never calls a model;
it leaves markers in place and skips properties that contain them. This
module is the asynchronous step around it: collect the markers, hand them
to a :class:`PromptResolver`, substitute the responses, and render again.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional, Protocol

from ..exceptions import RenderError
from ..models.clip import ClipResult
from ..models.template import Template
from .engine import Variables, render_string
from .filters import apply_chain

if TYPE_CHECKING:
    from ..core.clipper import Clipper

logger = logging.getLogger(__name__)

_PROMPT_RE = re.compile(r'\{\{(\\?)"(.*?)\1"\s*(?:\|([^}]*))?\}\}', re.DOTALL)


@dataclass(frozen=True)
class PromptRequest:
    """One prompt to resolve; responses are keyed by ``key``."""

    key: str
    prompt: str
    context: str = ""


class PromptResolver(Protocol):
    """
    Protocol for resolving prompts with a language model.

    Implementations own the network call, credentials and timeouts.
    """

    async def resolve_prompts(self, prompts: list[PromptRequest]) -> dict[str, str]:
        """
        Resolve prompts.

        Args:
            prompts: Prompts keyed ``prompt_1``, ``prompt_2``, ...

        Returns:
            Mapping of prompt key to response text; missing keys count as empty
        """
        ...


def _template_strings(template: Template) -> list[str]:
    return [template.note_name_format, template.note_content_format] + [p.value for p in template.properties]


def _prompt_text(match: "re.Match[str]") -> str:
    return match.group(2).replace('\\"', '"').strip()


def collect_prompts(template: Template, context: str = "") -> list[PromptRequest]:
    """
    Find the prompt markers of a template.

    Scans the note name, the body and every property value. Each distinct
    prompt is returned once, in first-seen order.
    """
    seen: dict[str, PromptRequest] = {}
    for text in _template_strings(template):
        for match in _PROMPT_RE.finditer(text):
            prompt = _prompt_text(match)
            if prompt and prompt not in seen:
                seen[prompt] = PromptRequest(key=f"prompt_{len(seen) + 1}", prompt=prompt, context=context)
    return list(seen.values())


def apply_prompt_responses(template: Template, responses: Mapping[str, str]) -> Template:
    """Return a copy of ``template`` with markers replaced by their responses."""
    keys = {request.prompt: request.key for request in collect_prompts(template)}

    def substitute(match: "re.Match[str]") -> str:
        response = responses.get(keys.get(_prompt_text(match), ""), "") or ""
        chain = match.group(3)
        return apply_chain(response, chain) if chain and chain.strip() else response

    def resolve(text: str) -> str:
        return _PROMPT_RE.sub(substitute, text)

    return template.model_copy(
        update={
            "note_name_format": resolve(template.note_name_format),
            "note_content_format": resolve(template.note_content_format),
            "properties": [
                prop.model_copy(update={"value": resolve(prop.value)}) for prop in template.properties
            ],
        }
    )


def build_prompt_message(prompts: list[PromptRequest]) -> str:
    """Format prompts as one model message asking for a JSON answer."""
    lines = [
        "Please respond to the following prompts. Return your response as JSON in this exact format:",
        '{"prompts_responses": {"prompt_1": "response1", "prompt_2": "response2", ...}}',
        "",
    ]
    context = next((p.context for p in prompts if p.context), "")
    if context:
        lines.extend(["Context:", context, ""])
    lines.extend(f"{p.key}: {p.prompt}" for p in prompts)
    return "\n".join(lines) + "\n"


def parse_prompt_responses(text: str, prompts: list[PromptRequest]) -> dict[str, str]:
    """
    Read the responses out of a model reply.

    Looks for a ``{"prompts_responses": {...}}`` object anywhere in the
    reply. When there is none, the whole reply answers the first prompt.
    """
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and isinstance(parsed.get("prompts_responses"), dict):
            return {str(k): "" if v is None else str(v) for k, v in parsed["prompts_responses"].items()}

    logger.debug("Model reply has no prompts_responses object, using it for the first prompt")
    return {p.key: (text.strip() if i == 0 else "") for i, p in enumerate(prompts)}


def prompt_context(template: Template, variables: Variables) -> str:
    """Render the template's context string (the page content by default)."""
    try:
        return render_string(template.context or "{{content}}", variables)
    except RenderError as e:
        logger.warning(f"Could not render prompt context for {template.name!r}: {e}")
        return render_string("{{content}}", variables)


async def render_with_prompts(
    clipper: "Clipper",
    template: Template,
    variables: Variables,
    resolver: PromptResolver,
    default_vault: Optional[str] = None,
) -> ClipResult:
    """
    Resolve a template's prompts, then build its clip request.

    A resolver failure is logged and the clip is built unresolved, so
    properties that needed a prompt are simply left out.
    """
    prompts = collect_prompts(template, prompt_context(template, variables))
    if not prompts:
        return clipper.build_clip_request(template, variables, default_vault)

    logger.info(f"Resolving {len(prompts)} prompt(s) for template {template.name!r}")
    try:
        responses = await resolver.resolve_prompts(prompts)
    except Exception as e:
        logger.warning(f"Prompt resolution failed, clipping without prompt values: {e}")
        return clipper.build_clip_request(template, variables, default_vault)

    return clipper.build_clip_request(apply_prompt_responses(template, responses), variables, default_vault)
