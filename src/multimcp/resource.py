# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Resource registration utilities.

A resource is registered under a hierarchical name (its permission group is
everything before the last ``/``) and exactly one of:

* a concrete ``uri`` -- the callback is invoked as ``fn(uri)`` or ``fn()``;
* a ``template`` such as ``greeting://{name}`` -- the callback is invoked as
  ``fn(uri, **variables)`` with the variables extracted from the requested URI.

Usage mirrors :mod:`multimcp.tool`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .capability import CapabilityOptions, RegistrationError, get_active_server
from .permissions import PermissionPath, group_from_name
from .templates import UriTemplate, is_template
from .utils.schema import ArgumentSchema, ensure_argument_schema


ResourceFn = Callable[..., Any]

URI_ARGUMENT = "uri"
"""Name of the positional argument carrying the requested URI; not usable as a placeholder."""


@dataclass(frozen=True, slots=True)
class ResourceSpec:
    """A resource registration with either a concrete URI or a URI template."""

    name: str
    fn: ResourceFn
    uri: str | None = None
    template: UriTemplate | None = None
    description: str | None = None
    mime_type: str | None = None
    argument_schema: ArgumentSchema | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    group: PermissionPath = field(init=False)
    key: str = field(init=False)

    def __post_init__(self) -> None:
        if (self.uri is None) == (self.template is None):
            raise RegistrationError(
                f"Resource '{self.name}' must declare exactly one of uri or template "
                f"(uri={self.uri!r}, template={self.template!r})"
            )
        if isinstance(self.template, str):
            object.__setattr__(self, "template", UriTemplate(self.template))
        if self.template is not None and URI_ARGUMENT in self.template.variables:
            raise RegistrationError(
                f"Resource '{self.name}' template {self.template.template!r} "
                f"uses the reserved placeholder '{{{URI_ARGUMENT}}}'"
            )
        object.__setattr__(self, "argument_schema", ensure_argument_schema(self.argument_schema))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "group", group_from_name(self.name))
        object.__setattr__(self, "key", self.name)

    @property
    def is_template(self) -> bool:
        return self.template is not None

    @classmethod
    def from_options(
        cls,
        name: str,
        uri_or_template: str,
        fn: ResourceFn,
        options: CapabilityOptions | None = None,
    ) -> ResourceSpec:
        """Build a spec, treating ``uri_or_template`` as a template when it has placeholders."""
        options = options or CapabilityOptions()
        location: dict[str, Any] = {}
        if uri_or_template and is_template(uri_or_template):
            location["template"] = UriTemplate(uri_or_template)
        elif uri_or_template:
            location["uri"] = uri_or_template
        return cls(
            name=name,
            fn=fn,
            description=options.description,
            mime_type=options.mime_type,
            argument_schema=options.argument_schema,
            metadata=options.metadata or {},
            **location,
        )


_RESOURCE_ATTR = "__multimcp_resource__"


def resource(
    name: str,
    *,
    uri: str | None = None,
    template: str | None = None,
    description: str | None = None,
    mime_type: str | None = None,
    argument_schema: ArgumentSchema | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> Callable[[ResourceFn], ResourceFn]:
    """Register a resource-producing callable.

    The callable may return ``str`` (text), ``bytes`` (binary) or any of the
    ``ReadResourceResult`` shapes. Registration happens immediately inside
    :meth:`multimcp.server.MultiServerMCP.binding`.
    """

    def decorator(fn: ResourceFn) -> ResourceFn:
        spec = ResourceSpec(
            name=name,
            fn=fn,
            uri=uri,
            template=UriTemplate(template) if template is not None else None,
            description=description,
            mime_type=mime_type,
            argument_schema=argument_schema,
            metadata=metadata or {},
        )
        setattr(fn, _RESOURCE_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_resource(spec)
        return fn

    return decorator


def extract_resource_spec(fn: ResourceFn) -> ResourceSpec | None:
    spec = getattr(fn, _RESOURCE_ATTR, None)
    return spec if isinstance(spec, ResourceSpec) else None


__all__ = ["URI_ARGUMENT", "ResourceFn", "ResourceSpec", "extract_resource_spec", "resource"]
