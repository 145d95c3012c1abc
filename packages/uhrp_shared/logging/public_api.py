"""``public_api_instrumented``: one span, log pair and metric sample per call.

Every public method of a host service or resource carries the decorator. The
method runs inside an OTel span and inside scoped log fields (trace id,
principal and the identifying keyword arguments named in ``id_fields``), so
anything it logs is correlated with the request.

Observers see an ``ApiCall`` before the method runs and an ``ApiOutcome``
after. An observer that raises is logged and counted; the call itself is
never affected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace import Status, StatusCode

from packages.uhrp_shared.envelope import Envelope

from .context import scoped_fields

INSTRUMENTATION_SCOPE = "uhrp.public_api"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCall:
    """Who called which component method, with which identifiers."""

    component_id: str
    api_name: str
    trace_id: str | None = None
    envelope_id: str | None = None
    principal: str | None = None
    ids: Mapping[str, str] | None = None

    def fields(self) -> dict[str, str]:
        """Log and span fields for this call; unset values are omitted."""
        candidates = {
            "component_id": self.component_id,
            "api_name": self.api_name,
            "trace_id": self.trace_id,
            "envelope_id": self.envelope_id,
            "principal": self.principal,
            **(self.ids or {}),
        }
        return {key: value for key, value in candidates.items() if value is not None}


@dataclass(frozen=True)
class ApiOutcome:
    call: ApiCall
    ok: bool
    duration_ms: float
    errors: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()

    @classmethod
    def from_result(cls, call: ApiCall, result: object, duration_ms: float) -> ApiOutcome:
        """Envelopes report their own errors; any other return value is a success."""
        if not isinstance(result, Envelope):
            return cls(call=call, ok=True, duration_ms=duration_ms)
        return cls(
            call=call,
            ok=result.ok,
            duration_ms=duration_ms,
            errors=tuple(error.summary() for error in result.errors),
            categories=tuple(error.category.value for error in result.errors),
        )

    @classmethod
    def from_exception(
        cls, call: ApiCall, exc: Exception, duration_ms: float
    ) -> ApiOutcome:
        return cls(
            call=call,
            ok=False,
            duration_ms=duration_ms,
            errors=(f"{type(exc).__name__}: {exc}",),
            categories=("internal",),
        )


class ApiObserver(Protocol):
    def called(self, call: ApiCall) -> None: ...

    def finished(self, outcome: ApiOutcome) -> None: ...


class LoggingObserver:
    """Info line per call; the result line is a warning when the call failed."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def called(self, call: ApiCall) -> None:
        self._logger.info("public API call", extra={"event": "public_api_call"})

    def finished(self, outcome: ApiOutcome) -> None:
        level = logging.INFO if outcome.ok else logging.WARNING
        self._logger.log(
            level,
            "public API result",
            extra={
                "event": "public_api_result",
                "ok": outcome.ok,
                "duration_ms": outcome.duration_ms,
                "errors": list(outcome.errors) or None,
            },
        )


class MetricsObserver:
    """Call count, latency histogram and per-category error count."""

    def __init__(self, meter: Any) -> None:
        self._calls = meter.create_counter(
            name="uhrp_public_api_calls_total",
            description="Public API calls by component, method and outcome.",
            unit="1",
        )
        self._duration = meter.create_histogram(
            name="uhrp_public_api_duration_ms",
            description="Public API call latency.",
            unit="ms",
        )
        self._errors = meter.create_counter(
            name="uhrp_public_api_errors_total",
            description="Public API failures by error category.",
            unit="1",
        )

    def called(self, call: ApiCall) -> None:
        del call

    def finished(self, outcome: ApiOutcome) -> None:
        method = {
            "component_id": outcome.call.component_id,
            "api_name": outcome.call.api_name,
        }
        attributes = {**method, "outcome": "success" if outcome.ok else "failure"}
        self._calls.add(1, attributes=attributes)
        self._duration.record(outcome.duration_ms, attributes=attributes)
        for category in outcome.categories:
            self._errors.add(1, attributes={**method, "error_category": category})


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    logger: logging.Logger | None = None,
    observers: Sequence[ApiObserver] = (),
    tracer: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument one public method.

    ``id_fields`` names keyword arguments (``uhrp_url``, ``object_id``, ...)
    whose non-blank values become log fields and span attributes. A ``meta``
    keyword argument supplies trace id, envelope id and principal.
    """
    active: tuple[ApiObserver, ...] = (
        *((LoggingObserver(logger),) if logger is not None else ()),
        _default_metrics(),
        *observers,
    )
    span_tracer = tracer or otel_trace.get_tracer(INSTRUMENTATION_SCOPE)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            call = _describe_call(component_id, method_name, id_fields, kwargs)
            fields = call.fields()
            with scoped_fields(fields), span_tracer.start_as_current_span(
                f"{component_id}.{method_name}", attributes=fields
            ) as span:
                _notify(active, "called", call, call)
                started = perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    _notify(
                        active,
                        "finished",
                        ApiOutcome.from_exception(call, exc, _elapsed_ms(started)),
                        call,
                    )
                    raise
                outcome = ApiOutcome.from_result(call, result, _elapsed_ms(started))
                _notify(active, "finished", outcome, call)
                span.set_attribute("uhrp.ok", outcome.ok)
                if not outcome.ok:
                    span.set_status(Status(StatusCode.ERROR, "; ".join(outcome.errors)))
                return result

        return wrapper

    return decorator


def _describe_call(
    component_id: str,
    api_name: str,
    id_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> ApiCall:
    meta = kwargs.get("meta")
    return ApiCall(
        component_id=component_id,
        api_name=api_name,
        trace_id=_meta_value(meta, "trace_id"),
        envelope_id=_meta_value(meta, "envelope_id"),
        principal=_meta_value(meta, "principal"),
        ids={
            name: str(kwargs[name])
            for name in id_fields
            if kwargs.get(name) not in (None, "")
        },
    )


def _meta_value(meta: object, name: str) -> str | None:
    value = getattr(meta, name, None)
    return str(value) if value not in (None, "") else None


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _notify(
    observers: Sequence[ApiObserver],
    hook: str,
    argument: ApiCall | ApiOutcome,
    call: ApiCall,
) -> None:
    for observer in observers:
        try:
            getattr(observer, hook)(argument)
        except Exception as exc:  # noqa: BLE001
            attributes = {
                "component_id": call.component_id,
                "api_name": call.api_name,
                "observer": type(observer).__name__,
                "hook": hook,
            }
            _LOGGER.warning(
                "instrumentation observer failed",
                extra={**attributes, "error": f"{type(exc).__name__}: {exc}"},
            )
            _observer_failures().add(1, attributes=attributes)


@lru_cache(maxsize=1)
def _default_metrics() -> MetricsObserver:
    return MetricsObserver(otel_metrics.get_meter(INSTRUMENTATION_SCOPE))


@lru_cache(maxsize=1)
def _observer_failures() -> Any:
    return otel_metrics.get_meter(INSTRUMENTATION_SCOPE).create_counter(
        name="uhrp_public_api_observer_failures_total",
        description="Instrumentation observer failures.",
        unit="1",
    )
