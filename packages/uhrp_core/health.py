"""Aggregate readiness across instantiated components."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

from pydantic import BaseModel, ConfigDict, Field

from packages.uhrp_shared.envelope import EnvelopeKind, new_meta
from packages.uhrp_shared.manifest import get_registry

DEFAULT_TIMEOUT_SECONDS = 5.0


class ComponentHealthResult(BaseModel):
    """One component-level readiness result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str = ""


class HostHealthResult(BaseModel):
    """Aggregate readiness across services and resources."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    services: dict[str, ComponentHealthResult] = Field(default_factory=dict)
    resources: dict[str, ComponentHealthResult] = Field(default_factory=dict)


def evaluate_host_health(
    *,
    components: Mapping[str, object],
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> HostHealthResult:
    """Evaluate readiness of every registered component exposing ``health()``.

    Components that were never instantiated are reported not ready. Components
    without a ``health()`` callable are left out of the result.
    """
    registry = get_registry()
    services = _evaluate_group(
        [str(m.id) for m in registry.services()], components, timeout_seconds
    )
    resources = _evaluate_group(
        [str(m.id) for m in registry.resources()], components, timeout_seconds
    )
    ready = all(item.ready for item in services.values()) and all(
        item.ready for item in resources.values()
    )
    return HostHealthResult(ready=ready, services=services, resources=resources)


def _evaluate_group(
    component_ids: list[str],
    components: Mapping[str, object],
    timeout_seconds: float,
) -> dict[str, ComponentHealthResult]:
    results: dict[str, ComponentHealthResult] = {}
    for component_id in component_ids:
        component = components.get(component_id)
        if component is None:
            results[component_id] = ComponentHealthResult(
                ready=False, detail="component not instantiated"
            )
            continue
        health_fn = getattr(component, "health", None)
        if not callable(health_fn):
            continue
        results[component_id] = _evaluate_component_health(
            health_fn=health_fn, timeout_seconds=timeout_seconds
        )
    return results


def _evaluate_component_health(
    *, health_fn: Callable[..., object], timeout_seconds: float
) -> ComponentHealthResult:
    """Call one ``health()`` with a timeout and normalize its result."""
    call: Callable[[], object]
    if "meta" in _parameters(health_fn):
        meta = new_meta(kind=EnvelopeKind.QUERY, source="host_health", principal="system")

        def _call_with_meta() -> object:
            return health_fn(meta=meta)

        call = _call_with_meta
    else:
        call = health_fn

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(call)
        try:
            result = future.result(timeout=timeout_seconds)
        except FutureTimeoutError:
            return ComponentHealthResult(
                ready=False,
                detail=f"health() exceeded timeout ({timeout_seconds:.3f}s)",
            )
        except Exception as exc:  # noqa: BLE001
            return ComponentHealthResult(
                ready=False, detail=f"health() raised {type(exc).__name__}"
            )

    ready, detail = _coerce_health_result(result)
    return ComponentHealthResult(ready=ready, detail=detail or "ok")


def _parameters(health_fn: Callable[..., object]) -> Mapping[str, inspect.Parameter]:
    try:
        return inspect.signature(health_fn).parameters
    except (TypeError, ValueError):
        return {}


def _coerce_health_result(result: object) -> tuple[bool, str]:
    """Normalize envelope, model and mapping health results into ready/detail."""
    if hasattr(result, "ok") and hasattr(result, "payload"):
        if not result.ok or result.payload is None:
            errors = list(getattr(result, "errors", ()))
            return False, errors[0].message if errors else "not ready"
        result = result.payload.value

    if hasattr(result, "model_dump"):
        values = result.model_dump(mode="python")
    elif isinstance(result, dict):
        values = result
    else:
        return False, "health() returned unsupported result"

    detail = values.get("detail")
    detail = detail if isinstance(detail, str) else ""
    if isinstance(values.get("ready"), bool):
        return values["ready"], detail
    flags = [
        value
        for key, value in values.items()
        if key.endswith("_ready") and isinstance(value, bool)
    ]
    if flags:
        return all(flags), detail
    return False, "health() result missing readiness fields"
