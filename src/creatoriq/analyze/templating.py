"""Minimal prompt templating: variables, conditionals and loops.

Rendering runs three passes in a fixed order:

1. ``{{name}}`` tokens are replaced with scalar variables. Text inside
   ``{{#each}}`` blocks is left alone so loop-local fields stay scoped to
   their loop. Tokens without a matching variable are kept as-is.
2. ``{{#if name}}...{{/if}}`` keeps its body when ``name`` is a truthy scalar
   or any sequence, empty ones included.
3. ``{{#each name}}...{{/each}}`` repeats its body once per mapping in the
   ``name`` sequence, substituting that mapping's fields. Missing or
   non-sequence variables expand to nothing.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Sequence, Set, Union

TemplateValue = Union[str, int, float, bool, Sequence[Mapping[str, Any]], None]
TemplateVariables = Mapping[str, TemplateValue]

_TOKEN = re.compile(r"\{\{(\w+)\}\}")
_IF_BLOCK = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_EACH_BLOCK = re.compile(r"\{\{#each (\w+)\}\}(.*?)\{\{/each\}\}", re.DOTALL)


def render_template(text: str, variables: TemplateVariables) -> str:
    rendered = _substitute_outside_loops(text, variables)
    rendered = _IF_BLOCK.sub(
        lambda match: match.group(2) if _is_present(variables.get(match.group(1))) else "",
        rendered,
    )
    return _EACH_BLOCK.sub(lambda match: _expand_loop(match, variables), rendered)


def referenced_variables(text: str) -> Set[str]:
    """Top-level variable names a template depends on (loop fields excluded)."""
    names = {match.group(1) for match in _IF_BLOCK.finditer(text)}
    names.update(match.group(1) for match in _EACH_BLOCK.finditer(text))
    outside_loops = _EACH_BLOCK.sub("", text)
    names.update(match.group(1) for match in _TOKEN.finditer(outside_loops))
    return names


def estimate_tokens(text: str) -> int:
    # ~4 characters per token
    return math.ceil(len(text) / 4)


def _substitute_outside_loops(text: str, variables: TemplateVariables) -> str:
    pieces = []
    last = 0
    for match in _EACH_BLOCK.finditer(text):
        pieces.append(_substitute(text[last:match.start()], variables))
        pieces.append(match.group(0))
        last = match.end()
    pieces.append(_substitute(text[last:], variables))
    return "".join(pieces)


def _substitute(text: str, values: Mapping[str, Any]) -> str:
    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in values or not _is_scalar(values[name]):
            return match.group(0)
        return _format_scalar(values[name])

    return _TOKEN.sub(replace, text)


def _expand_loop(match: re.Match, variables: TemplateVariables) -> str:
    items = variables.get(match.group(1))
    if not _is_sequence(items):
        return ""
    body = match.group(2)
    return "".join(_substitute(body, item) for item in items if isinstance(item, Mapping))


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_present(value: Any) -> bool:
    if _is_sequence(value):
        return True
    return bool(value)


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
