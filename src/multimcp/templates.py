# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""URI template matching for resource reads.

Only simple ``{name}`` placeholders are supported. Each placeholder captures one
or more characters other than ``/`` and the whole URI must match::

    >>> UriTemplate("greeting://{name}").match("greeting://alice")
    {'name': 'alice'}
    >>> UriTemplate("greeting://{name}").match("greeting://alice/bob") is None
    True
"""

from __future__ import annotations

from functools import cached_property
import re
from typing import Any


_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
_SEGMENT_CAPTURE = "([^/]+)"


def template_variables(template: str) -> list[str]:
    """Placeholder names in left-to-right order; duplicates are kept."""
    return _PLACEHOLDER.findall(template)


def is_template(value: str) -> bool:
    return _PLACEHOLDER.search(value) is not None


def compile_template(template: str) -> re.Pattern[str]:
    """Escape the literal text and turn each placeholder into a capture group."""
    parts: list[str] = []
    position = 0
    for placeholder in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[position : placeholder.start()]))
        parts.append(_SEGMENT_CAPTURE)
        position = placeholder.end()
    parts.append(re.escape(template[position:]))
    return re.compile("".join(parts))


class UriTemplate:
    """A compiled resource URI template."""

    def __init__(self, template: str) -> None:
        self.template = template
        self.variables: tuple[str, ...] = tuple(template_variables(template))

    def __repr__(self) -> str:
        return f"UriTemplate({self.template!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UriTemplate):
            return self.template == other.template
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.template)

    @cached_property
    def pattern(self) -> re.Pattern[str]:
        return compile_template(self.template)

    def match(self, uri: str) -> dict[str, str] | None:
        """Extract variables from *uri*, or ``None`` when it does not match."""
        found = self.pattern.fullmatch(uri)
        if found is None:
            return None
        # dict() keeps the last capture when a name repeats.
        return dict(zip(self.variables, found.groups()))

    def expand(self, **values: Any) -> str:
        """Substitute ``values`` into the template."""

        def _replace(placeholder: re.Match[str]) -> str:
            name = placeholder.group(1)
            if name not in values:
                raise KeyError(f"missing value for template variable '{name}'")
            return str(values[name])

        return _PLACEHOLDER.sub(_replace, self.template)


__all__ = ["UriTemplate", "compile_template", "is_template", "template_variables"]
