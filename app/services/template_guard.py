"""Reversible protection of ``{{ ... }}`` template expressions.

Article HTML pasted from a CMS frequently carries templating syntax such as
``<a href="{{ product.url }}">`` or ``{{ "now" | date }}``.  Running that
markup through an HTML parser mangles it (quotes inside attribute values,
entity escaping), so every expression is swapped for an opaque positional
token before parsing and swapped back after serialization.

Tokens are lower-case because the parser lower-cases attribute names: an
expression written where an attribute goes (``<a href="/x" {{ attrs }}>``)
becomes an empty attribute named after its token and is serialised as
``token=""``.  :func:`restore` accepts that form too.
"""

import re
from typing import List, NamedTuple

# A match never spans ``}}`` prematurely: any character except ``}``, or a
# ``}`` that is not followed by another ``}``.
_TEMPLATE_RE = re.compile(r"\{\{(?:[^}]|\}(?!\}))*\}\}")

PLACEHOLDER_PREFIX = "__srlc_tpl_"


class Guarded(NamedTuple):
    html: str
    placeholders: List[str]
    prefix: str = PLACEHOLDER_PREFIX


def _token_re(prefix: str) -> "re.Pattern[str]":
    token = re.escape(prefix) + r"(\d+)__"
    # First alternative: a token left as an empty attribute, name="" form
    return re.compile(rf'(?<=\s){token}=""|{token}')


def _pick_prefix(html: str) -> str:
    """Return a token prefix that does not already occur in *html*, in any case."""
    lowered = html.lower()
    if PLACEHOLDER_PREFIX not in lowered:
        return PLACEHOLDER_PREFIX
    n = 1
    while f"__srlc{n}_tpl_" in lowered:
        n += 1
    return f"__srlc{n}_tpl_"


def protect(html: str) -> Guarded:
    """Replace every template expression in *html* with a positional token.

    Returns the guarded markup together with the ordered list of original
    expressions and the token prefix that :func:`restore` needs.
    """
    prefix = _pick_prefix(html)
    placeholders: List[str] = []

    def _swap(match: "re.Match[str]") -> str:
        placeholders.append(match.group(0))
        return f"{prefix}{len(placeholders) - 1}__"

    return Guarded(_TEMPLATE_RE.sub(_swap, html), placeholders, prefix)


def restore(html: str, placeholders: List[str], prefix: str = PLACEHOLDER_PREFIX) -> str:
    """Put the original template expressions back in place of their tokens."""
    if not placeholders:
        return html

    def _swap(match: "re.Match[str]") -> str:
        idx = int(match.group(1) or match.group(2))
        if idx < len(placeholders):
            return placeholders[idx]
        return match.group(0)

    return _token_re(prefix).sub(_swap, html)
