"""Materialise math snippets into standalone LaTeX documents and cache keys."""

from __future__ import annotations

from hashlib import sha256
import json

from jinja2 import Environment, StrictUndefined

from .models import RenderRequest


DIGEST_LENGTH = 12

_ENVIRONMENT = Environment(
    block_start_string=r"\BLOCK{",
    block_end_string=r"}",
    variable_start_string=r"\VAR{",
    variable_end_string=r"}",
    comment_start_string=r"\COMMENT{",
    comment_end_string=r"}",
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)

_DOCUMENT_TEMPLATE = _ENVIRONMENT.from_string(
    r"""\documentclass[preview,border=1pt,varwidth=500pt,12pt]{standalone}
\usepackage{amsmath, amssymb, amsfonts, amscd, mathtools, xcolor}
\begin{document}
{ \Large \selectfont
  \color[HTML]{\VAR{color}}
\BLOCK{ if display }\[ \VAR{content} \]\BLOCK{ else }\VAR{content}\BLOCK{ endif }}
\end{document}
"""
)


def strip_delimiters(snippet: str) -> str:
    """Return the math body of ``snippet`` without surrounding markers."""
    content = (snippet or "").strip()
    if content.startswith("$|"):
        content = content[2:]
    if content.endswith("|$"):
        content = content[:-2]
    if content.startswith("$"):
        content = content[1:]
    if content.endswith("$"):
        content = content[:-1]
    return content


def build_document_source(request: RenderRequest) -> str:
    """Wrap a snippet in the standalone preamble with the requested color."""
    content = strip_delimiters(request.snippet)
    # Explicit environments are kept as written, everything else goes in display math.
    return _DOCUMENT_TEMPLATE.render(
        color=request.style.color,
        content=content,
        display="\\begin" not in content,
    )


def cache_key(request: RenderRequest) -> str:
    """Return the hex digest identifying the compiled artifact for ``request``."""
    digest = sha256()
    digest.update(build_document_source(request).encode("utf-8"))
    options = {"density": request.style.density}
    digest.update(json.dumps(options, sort_keys=True, separators=(",", ":")).encode("utf-8"))
    return digest.hexdigest()


def artifact_basename(key: str) -> str:
    return key[:DIGEST_LENGTH]


__all__ = [
    "DIGEST_LENGTH",
    "artifact_basename",
    "build_document_source",
    "cache_key",
    "strip_delimiters",
]
