"""
Placeholder substitution for follow-up emails.

Templates may only use a closed set of ``{{token}}`` placeholders; the
catalog rejects anything else when it loads, so personalization can never
leave a raw placeholder in an outgoing email.
"""

import html
import re
from typing import Mapping

from inquiry_engine.config import BrandConfig
from inquiry_engine.errors import CatalogError
from inquiry_engine.schemas.service_schema import ServiceType, get_display_name

TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

ALLOWED_TOKENS = frozenset({"name", "email", "service", "artist", "site_url"})

# Used by previews when no sample data is supplied.
DEFAULT_SAMPLE_DATA: dict[str, str] = {
    "name": "John",
    "email": "john@example.com",
}


def find_tokens(text: str) -> set[str]:
    """Return every placeholder name used in ``text``."""
    return {match.group(1) for match in TOKEN_PATTERN.finditer(text)}


def unknown_tokens(text: str) -> set[str]:
    return find_tokens(text) - ALLOWED_TOKENS


def text_to_html(text: str) -> str:
    """
    Render a plain-text template as simple HTML, keeping placeholders intact.

    Blank lines separate paragraphs; single newlines become ``<br>``.

    Examples:
        >>> text_to_html("Hi {{name}},\\n\\nThanks & talk soon")
        '<p>Hi {{name}},</p>\\n<p>Thanks &amp; talk soon</p>'
    """
    paragraphs = [block.strip() for block in re.split(r"\n\s*\n", text.strip()) if block.strip()]
    rendered = [
        "<p>" + "<br>".join(html.escape(line, quote=False) for line in block.splitlines()) + "</p>"
        for block in paragraphs
    ]
    return "\n".join(rendered)


def build_token_values(
    name: str,
    email: str,
    service_type: ServiceType,
    brand: BrandConfig,
) -> dict[str, str]:
    return {
        "name": name,
        "email": email,
        "service": get_display_name(service_type),
        "artist": brand.artist_name,
        "site_url": brand.site_url,
    }


def personalize(template: str, values: Mapping[str, str], escape_html: bool = False) -> str:
    """
    Substitute every placeholder in ``template``.

    Raises:
        CatalogError: If the template uses a token outside the allowed set or
            ``values`` has no entry for it.
    """

    def _substitute(match: "re.Match[str]") -> str:
        token = match.group(1)
        if token not in ALLOWED_TOKENS or token not in values:
            raise CatalogError(f"Unresolvable placeholder '{{{{{token}}}}}'")
        value = values[token]
        return html.escape(value) if escape_html else value

    return TOKEN_PATTERN.sub(_substitute, template)
