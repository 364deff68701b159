# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Resource capability service.

Reads are resolved by URI: a concrete resource whose URI equals the request
wins, otherwise the first template (in registration order) that matches. The
permission check runs on the resolved record, so a URI that only matches
resources outside the caller's group is reported as denied rather than missing.
"""

from __future__ import annotations

from collections.abc import Callable
import inspect
import logging
from typing import TYPE_CHECKING, Any, NoReturn

from mcp.shared.exceptions import McpError
from pydantic import AnyUrl, ValidationError

from ..adapters import normalize_resource_payload
from ..registry import CapabilityRegistry
from ... import types
from ...permissions import PermissionEngine
from ...resource import ResourceSpec, extract_resource_spec
from ...utils import maybe_await_with_args
from ...utils.schema import SchemaError, validate_arguments


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..session import Session


def _invalid_params(message: str) -> McpError:
    return McpError(types.ErrorData(code=types.INVALID_PARAMS, message=message))


def _canonical_uri(uri: str) -> str:
    try:
        return str(AnyUrl(uri))
    except ValidationError:
        return uri


def _accepts_uri(fn: Callable[..., Any]) -> bool:
    """Whether *fn* can be called with the URI as its single positional argument."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return True
    for param in params:
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
            return True
    return False


class ResourcesService:
    def __init__(self, *, permissions: PermissionEngine, logger: logging.Logger) -> None:
        self._permissions = permissions
        self._logger = logger
        self.registry: CapabilityRegistry[ResourceSpec] = CapabilityRegistry("resource")

    @property
    def names(self) -> list[str]:
        return self.registry.names

    def register(self, target: ResourceSpec | Callable[..., Any]) -> ResourceSpec:
        spec = target if isinstance(target, ResourceSpec) else extract_resource_spec(target)
        if spec is None:
            raise TypeError(f"{target!r} is not a resource; decorate it with @resource or pass a ResourceSpec")
        return self.registry.register(spec)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_resources(self, session: Session | None) -> types.ListResourcesResult:
        resources = [
            types.Resource(
                name=spec.name,
                uri=spec.uri,
                description=spec.description,
                mimeType=spec.mime_type,
                _meta=dict(spec.metadata) or None,
            )
            for spec in self._permissions.filter(self.registry.list(), session)
            if spec.uri is not None
        ]
        return types.ListResourcesResult(resources=resources)

    async def list_templates(self, session: Session | None) -> types.ListResourceTemplatesResult:
        templates = [
            types.ResourceTemplate(
                name=spec.name,
                uriTemplate=spec.template.template,
                description=spec.description,
                mimeType=spec.mime_type,
                _meta={**spec.metadata, "variables": list(spec.template.variables)},
            )
            for spec in self._permissions.filter(self.registry.list(), session)
            if spec.template is not None
        ]
        return types.ListResourceTemplatesResult(resourceTemplates=templates)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def resolve(self, uri: str) -> list[ResourceSpec]:
        """Every record able to serve *uri*, best match first."""
        canonical = _canonical_uri(uri)
        records = self.registry.list()
        concrete = [
            spec
            for spec in records
            if spec.uri is not None and (spec.uri == uri or _canonical_uri(spec.uri) == canonical)
        ]
        templated = [
            spec
            for spec in records
            if spec.template is not None and (spec.template.match(uri) is not None)
        ]
        return concrete + templated

    async def read(self, uri: str, session: Session | None, *, name: str | None = None) -> types.ReadResourceResult:
        if name is not None:
            spec = self.registry.get(name)
            if spec is None:
                raise _invalid_params(f"Resource {name} not found")
            if not self._permissions.allows(spec, session):
                self._deny(name, session)
        else:
            candidates = self.resolve(uri)
            if not candidates:
                raise _invalid_params(f"Resource {uri} not found")
            allowed = self._permissions.filter(candidates, session)
            if not allowed:
                self._deny(uri, session)
            spec = allowed[0]

        if spec.uri is not None:
            try:
                AnyUrl(uri)
            except ValidationError as exc:
                raise _invalid_params(f"Invalid URI {uri}: {exc}") from exc
            args: tuple[Any, ...] = (uri,) if _accepts_uri(spec.fn) else ()
            kwargs: dict[str, Any] = {}
        elif spec.template is not None:
            variables = spec.template.match(uri)
            if variables is None:
                raise _invalid_params(f"URI {uri} does not match template {spec.template.template}")
            args = (uri,)
            kwargs = self._bind_variables(spec, variables)
        else:
            raise McpError(
                types.ErrorData(
                    code=types.INTERNAL_ERROR,
                    message=f"Resource {spec.name} has neither a uri nor a template",
                )
            )

        try:
            payload = await maybe_await_with_args(spec.fn, *args, **kwargs)
        except Exception:
            self._logger.exception("resource %s failed for %s", spec.name, uri)
            raise

        return normalize_resource_payload(uri, spec.mime_type, payload)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _bind_variables(self, spec: ResourceSpec, variables: dict[str, str]) -> dict[str, Any]:
        if spec.argument_schema is None:
            return dict(variables)
        try:
            return validate_arguments(spec.argument_schema, variables)
        except SchemaError as exc:
            raise _invalid_params(f"Invalid arguments for resource {spec.name}: {exc}") from exc

    def _deny(self, target: str, session: Session | None) -> NoReturn:
        self._logger.warning("session %s denied resource %s", session.session_id if session else None, target)
        raise _invalid_params(f"Access denied to resource {target}")


__all__ = ["ResourcesService"]
