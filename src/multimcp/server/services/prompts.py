# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt capability service."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import TYPE_CHECKING, Any

from mcp.shared.exceptions import McpError

from ..adapters import normalize_prompt_result
from ..registry import CapabilityRegistry
from ... import types
from ...permissions import PermissionEngine
from ...prompt import PromptSpec, extract_prompt_spec
from ...utils import maybe_await_with_args
from ...utils.schema import SchemaError, prompt_arguments_for, validate_arguments


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..session import Session


class PromptsService:
    def __init__(self, *, permissions: PermissionEngine, logger: logging.Logger) -> None:
        self._permissions = permissions
        self._logger = logger
        self.registry: CapabilityRegistry[PromptSpec] = CapabilityRegistry("prompt")

    @property
    def names(self) -> list[str]:
        return self.registry.names

    def register(self, target: PromptSpec | Callable[..., Any]) -> PromptSpec:
        spec = target if isinstance(target, PromptSpec) else extract_prompt_spec(target)
        if spec is None:
            fn = target
            spec = PromptSpec.from_options(getattr(fn, "__name__", "anonymous"), fn)
        return self.registry.register(spec)

    async def list_prompts(self, session: Session | None) -> types.ListPromptsResult:
        prompts = [
            types.Prompt(
                name=spec.key,
                description=spec.description,
                arguments=prompt_arguments_for(spec.argument_schema),
            )
            for spec in self._permissions.filter(self.registry.list(), session)
        ]
        return types.ListPromptsResult(prompts=prompts)

    async def get_prompt(
        self, name: str, arguments: Mapping[str, Any] | None, session: Session | None
    ) -> types.GetPromptResult:
        spec = self.registry.get(name)
        if spec is None:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Prompt {name} not found"))

        if not self._permissions.allows(spec, session):
            self._logger.warning("session %s denied prompt %s", session.session_id if session else None, name)
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Access denied to prompt {name}"))

        if spec.argument_schema is not None:
            try:
                kwargs = validate_arguments(spec.argument_schema, arguments)
            except SchemaError as exc:
                raise McpError(
                    types.ErrorData(code=types.INVALID_PARAMS, message=f"Invalid arguments for prompt {name}: {exc}")
                ) from exc
        else:
            kwargs = dict(arguments or {})

        try:
            result = await maybe_await_with_args(spec.fn, **kwargs)
        except Exception:
            self._logger.exception("prompt %s failed", name)
            raise

        return normalize_prompt_result(result, description=spec.description)


__all__ = ["PromptsService"]
