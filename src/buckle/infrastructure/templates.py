"""Template rendering for ``*.tpl`` files via Jinja2.

Templates reference variables Go-template style as ``{{ .NAME }}``; a
leading dot addresses the root variable map. Plain Jinja2 references
(``{{ NAME }}``, filters, conditionals) work too.

Rendering is a pure function of (variables, text): no filesystem access,
no loaders, no globals beyond the variables passed in. Undefined
references are errors, never empty strings.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2 import TemplateError as JinjaTemplateError

from buckle.errors import TemplateError

# Jinja2 expression/statement blocks.
_BLOCK_PATTERN = re.compile(r"(\{\{|\{%)(.*?)(\}\}|%\})", re.DOTALL)
# A dot that starts a reference: not preceded by a name, call or subscript.
_ROOT_DOT_PATTERN = re.compile(r"(?<![\w\])'\"])\.(?=[A-Za-z_])")
# Quoted strings inside a block, left untouched by the rewrite.
_STRING_PATTERN = re.compile(r"('[^']*'|\"[^\"]*\")")


def _rewrite_block(match: re.Match[str]) -> str:
    opener, body, closer = match.groups()
    parts = _STRING_PATTERN.split(body)
    for i in range(0, len(parts), 2):
        parts[i] = _ROOT_DOT_PATTERN.sub("", parts[i])
    return f"{opener}{''.join(parts)}{closer}"


def normalize_references(text: str) -> str:
    """Rewrite ``{{ .NAME }}`` root references into ``{{ NAME }}``.

    Examples:
        >>> normalize_references("addr={{ .IP_ADDRESS }}:{{ .PORT }}")
        'addr={{ IP_ADDRESS }}:{{ PORT }}'
        >>> normalize_references("{{ user.name }}")
        '{{ user.name }}'
    """
    return _BLOCK_PATTERN.sub(_rewrite_block, text)


def build_template_environment() -> Environment:
    """A sandbox-free, loader-free environment that fails on undefined names."""
    return Environment(
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def render_template(
    text: str,
    variables: Mapping[str, str],
    *,
    source: Path | str | None = None,
) -> str:
    """Render *text* against *variables*.

    Args:
        text: Raw template content.
        variables: Flattened variable map (secrets included).
        source: Template file path, used only for error reporting.

    Raises:
        TemplateError: On syntax errors or undefined variable references.
    """
    env = build_template_environment()
    try:
        template = env.from_string(normalize_references(text))
        return template.render(dict(variables))
    except TemplateSyntaxError as exc:
        msg = f"Syntax error in template: {exc.message}"
        raise TemplateError(msg, path=source, line=exc.lineno) from exc
    except UndefinedError as exc:
        msg = f"Undefined variable in template: {exc.message}"
        raise TemplateError(msg, path=source, line=_render_lineno(exc)) from exc
    except JinjaTemplateError as exc:
        msg = f"Failed to render template: {exc}"
        raise TemplateError(msg, path=source, line=_render_lineno(exc)) from exc


def _render_lineno(exc: BaseException) -> int | None:
    """Best-effort template line number from a render-time traceback."""
    tb = exc.__traceback__
    lineno: int | None = None
    while tb is not None:
        if tb.tb_frame.f_code.co_filename == "<template>":
            lineno = tb.tb_lineno
        tb = tb.tb_next
    return lineno
