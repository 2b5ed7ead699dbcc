"""Command-line interface for vaultclip."""

import argparse
import sys
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from . import __version__
from .core.clipper import Clipper
from .exceptions import ConfigError, TemplateImportError, VaultclipError
from .http import RequestsPageFetcher
from .logging_config import setup_logging_from_settings
from .models.config import ClipperSettings
from .models.template import Template
from .storage.templates import JsonTemplateRepository, import_template, import_templates

EXIT_OK = 0
EXIT_FALLBACK = 1
EXIT_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="vaultclip",
        description="Clip a web page into a Markdown note using a template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clip a page with the default note layout
  vaultclip https://blog.example.com/post

  # Clip a saved page, resolving links against its original URL
  vaultclip --html-file saved.html --url https://blog.example.com/post

  # Render with a template file and print the vault request as JSON
  vaultclip https://blog.example.com/post --template article.json --json

  # Import templates into a template store
  vaultclip --import exported.json --templates ~/.vaultclip/templates.json

Exit codes:
  0  clip produced
  1  clip produced, but the template failed and a plain note was used
  2  extraction, fetch, configuration or import failure
        """,
    )

    parser.add_argument("page_url", nargs="?", metavar="URL", help="URL of the page to clip")

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Input
    parser.add_argument(
        "--html-file",
        type=Path,
        default=None,
        help="Read page HTML from a file instead of fetching it",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Page URL for --html-file (used for links and the domain)",
    )

    # Templates
    template_group = parser.add_mutually_exclusive_group()
    template_group.add_argument(
        "--template",
        type=Path,
        default=None,
        help="Template JSON file to render with",
    )
    template_group.add_argument(
        "--templates",
        type=Path,
        default=None,
        help="Template store (JSON list) to pick a template from",
    )
    parser.add_argument(
        "--template-id",
        default=None,
        help="Template id in --templates (default: settings, then the first template)",
    )
    parser.add_argument(
        "--import",
        dest="import_file",
        type=Path,
        default=None,
        help="Import templates from a JSON file (into --templates, if given)",
    )

    # Settings and output
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML file",
    )
    parser.add_argument(
        "--vault",
        default=None,
        help="Vault name (overrides settings; a template's own vault still wins)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the clip request as JSON instead of the note",
    )
    parser.add_argument(
        "--full-html",
        action="store_true",
        help="Expose the original document to templates as {{fullHtml}}",
    )

    # Logging
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Only log errors")

    return parser


def load_settings(path: Optional[Path]) -> ClipperSettings:
    if path is None:
        return ClipperSettings()
    return ClipperSettings.from_yaml_file(path)


def _read_bytes(path: Path, what: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Could not read {what} {path}: {e}") from e


def run_import(args: argparse.Namespace, console: Console) -> int:
    """Validate (and optionally store) templates from ``--import``."""
    result = import_templates(_read_bytes(args.import_file, "template file"))

    if args.templates:
        repo = JsonTemplateRepository(args.templates)
        for template in result.imported:
            repo.save(template)

    for template in result.imported:
        console.print(f"[green]Imported:[/green] {template.name} ({template.id})")
    for error in result.errors:
        console.print(f"[red]Failed:[/red] {error}")

    return EXIT_OK if result.ok else EXIT_ERROR


def select_template(args: argparse.Namespace, settings: ClipperSettings) -> Optional[Template]:
    if args.template:
        return import_template(_read_bytes(args.template, "template file"))
    if args.templates:
        template = JsonTemplateRepository(args.templates).default(args.template_id or settings.default_template_id)
        if template is None:
            raise ConfigError(f"No templates stored in {args.templates}")
        return template
    return None


def run_clip(args: argparse.Namespace, settings: ClipperSettings, console: Console) -> int:
    """Extract, render and print one clip."""
    if args.html_file:
        html: Union[str, bytes] = _read_bytes(args.html_file, "HTML file")
        url = args.url or args.page_url or ""
    elif args.page_url:
        with RequestsPageFetcher(settings.fetch) as fetcher:
            page = fetcher.fetch(args.page_url)
        html, url = page.html, page.url
    else:
        console.print("[red]Error:[/red] Please provide a URL or --html-file")
        return EXIT_ERROR

    template = select_template(args, settings)
    clipper = Clipper(settings)
    variables = clipper.extract_content(html, url, include_full_html=args.full_html)
    result = clipper.build_clip_request(template, variables, default_vault=args.vault)

    if args.json:
        sys.stdout.write(result.request.to_json() + "\n")
    else:
        sys.stdout.write(result.request.content + "\n")

    if result.used_fallback:
        console.print(f"[yellow]Template failed, wrote a plain note:[/yellow] {result.error}")
        return EXIT_FALLBACK

    if not args.quiet:
        console.print(f"[green]Clipped:[/green] {result.request.note_name}")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=True)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_ERROR

    setup_logging_from_settings(settings, verbose=args.verbose, quiet=args.quiet)

    try:
        if args.import_file:
            return run_import(args, console)
        return run_clip(args, settings, console)
    except TemplateImportError as e:
        console.print(f"[red]Template error:[/red] {e}")
        return EXIT_ERROR
    except VaultclipError as e:
        console.print(f"[red]Error:[/red] {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
