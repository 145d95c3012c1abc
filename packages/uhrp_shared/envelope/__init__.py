"""Request metadata and result envelopes passed between host components."""

from .envelope import Envelope, Payload, failure, success
from .meta import EnvelopeKind, EnvelopeMeta, child_meta, new_meta, validate_meta

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "Payload",
    "child_meta",
    "failure",
    "new_meta",
    "success",
    "validate_meta",
]
