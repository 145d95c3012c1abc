"""Renewal of an advertisement: redeem the current output and reissue it.

A renewal walks a fixed sequence of stages. Each stage maps its own failures
to a distinct error code so callers can tell how far a run progressed:

    RESOLVING_CURRENT -> VALIDATING -> REDEEMING -> REISSUING
    -> BROADCASTING -> UPDATING_BACKING_STORE -> DONE

``FAILED`` is reachable from every non-terminal stage. Spending the old output
and creating its successor is a single ledger call, so the object never has
zero live advertisements. A run that fails after REISSUING leaves the ledger
correct; re-running only the backing-store update is safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Callable

from packages.uhrp_shared.errors import (
    ErrorDetail,
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    validation_error,
)
from resources.adapters.pricing import StoragePricingAdapter
from resources.substrates.ledger import (
    LedgerError,
    LedgerSubstrate,
    SpendAuthorizationError,
    SpendConflictError,
)
from resources.substrates.object_store import ObjectNotFoundError, ObjectStoreSubstrate
from services.state.advertisement_authority import codes
from services.state.advertisement_authority.codec import (
    MAX_VARINT,
    MalformedRecordError,
    decode_record,
    encode_record,
)
from services.state.advertisement_authority.config import AdvertisementAuthoritySettings
from services.state.advertisement_authority.domain import RenewalResult
from services.state.advertisement_authority.index import (
    AdvertisementIndex,
    AttributeFilter,
    IndexCandidate,
    select_winner,
)
from services.state.advertisement_authority.labels import LabelKind, labels_for
from services.state.advertisement_authority.validation import RenewRequest


class RenewalStage(str, Enum):
    """Stages of one renewal run."""

    RESOLVING_CURRENT = "resolving_current"
    VALIDATING = "validating"
    REDEEMING = "redeeming"
    REISSUING = "reissuing"
    BROADCASTING = "broadcasting"
    UPDATING_BACKING_STORE = "updating_backing_store"
    DONE = "done"
    FAILED = "failed"


_NEXT_STAGE: dict[RenewalStage, RenewalStage] = {
    RenewalStage.RESOLVING_CURRENT: RenewalStage.VALIDATING,
    RenewalStage.VALIDATING: RenewalStage.REDEEMING,
    RenewalStage.REDEEMING: RenewalStage.REISSUING,
    RenewalStage.REISSUING: RenewalStage.BROADCASTING,
    RenewalStage.BROADCASTING: RenewalStage.UPDATING_BACKING_STORE,
    RenewalStage.UPDATING_BACKING_STORE: RenewalStage.DONE,
}


class RenewalFailed(Exception):
    """Raised when a renewal run stops in ``FAILED``."""

    def __init__(self, *, stage: RenewalStage, error: ErrorDetail) -> None:
        super().__init__(f"renewal failed while {stage.value}: {error.code}")
        self.stage = stage
        self.error = error


@dataclass
class RenewalRun:
    """Stage bookkeeping for one renewal."""

    uhrp_url: str
    stage: RenewalStage = RenewalStage.RESOLVING_CURRENT
    history: list[RenewalStage] = field(
        default_factory=lambda: [RenewalStage.RESOLVING_CURRENT]
    )

    def advance(self, stage: RenewalStage) -> None:
        if _NEXT_STAGE.get(self.stage) is not stage:
            raise RuntimeError(
                f"illegal renewal transition {self.stage.value} -> {stage.value}"
            )
        self.stage = stage
        self.history.append(stage)

    def fail(self, error: ErrorDetail) -> RenewalFailed:
        failed_at = self.stage
        if self.stage not in (RenewalStage.DONE, RenewalStage.FAILED):
            self.stage = RenewalStage.FAILED
            self.history.append(RenewalStage.FAILED)
        return RenewalFailed(stage=failed_at, error=error)


class AdvertisementRenewer:
    """Run the renewal state machine against injected collaborators."""

    def __init__(
        self,
        *,
        settings: AdvertisementAuthoritySettings,
        index: AdvertisementIndex,
        ledger: LedgerSubstrate,
        object_store: ObjectStoreSubstrate,
        pricing: StoragePricingAdapter,
        clock: Callable[[], float],
        logger: logging.Logger,
    ) -> None:
        self._settings = settings
        self._index = index
        self._ledger = ledger
        self._object_store = object_store
        self._pricing = pricing
        self._clock = clock
        self._logger = logger

    def renew(self, request: RenewRequest) -> RenewalResult:
        """Renew the current advertisement of ``request.uhrp_url``.

        Raises ``RenewalFailed`` carrying the stage and a structured error.
        """
        run = RenewalRun(uhrp_url=request.uhrp_url)
        try:
            return self._run(run, request)
        except RenewalFailed as exc:
            self._logger.warning(
                "renewal failed",
                extra={
                    "uhrp_url": request.uhrp_url,
                    "stage": exc.stage.value,
                    "code": exc.error.code,
                },
            )
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.exception(
                "renewal aborted by unexpected error",
                extra={"uhrp_url": request.uhrp_url, "stage": run.stage.value},
            )
            raise run.fail(
                internal_error(
                    "An error occurred while handling the renewal.",
                    code=codes.INTERNAL_RENEW,
                    metadata={"exception_type": type(exc).__name__},
                )
            ) from exc

    def _run(self, run: RenewalRun, request: RenewRequest) -> RenewalResult:
        # RESOLVING_CURRENT
        now = self._clock()
        try:
            batch = self._index.query(
                [
                    AttributeFilter(LabelKind.UHRP_URL, request.uhrp_url),
                    AttributeFilter(
                        LabelKind.UPLOADER_IDENTITY, request.uploader_identity_key
                    ),
                ],
                limit=request.limit,
                offset=request.offset,
                include_fields=True,
            )
        except LedgerError as exc:
            raise run.fail(
                dependency_error(
                    f"advertisement index unavailable: {exc}",
                    code=codes.LEDGER_UNAVAILABLE,
                )
            ) from exc
        winner = select_winner(batch)
        if winner is None:
            raise run.fail(
                not_found_error(
                    f"no advertisement found for {request.uhrp_url}",
                    code=codes.NOT_FOUND,
                )
            )
        assert winner.object_id is not None and winner.expiry_time is not None
        if not winner.is_live(now):
            raise run.fail(
                not_found_error(
                    f"advertisement for {request.uhrp_url} has expired",
                    code=codes.EXPIRED,
                )
            )
        live_siblings = [
            candidate
            for candidate in batch
            if candidate.object_id == winner.object_id and candidate.is_live(now)
        ]
        if len(live_siblings) > 1:
            raise run.fail(
                conflict_error(
                    f"{len(live_siblings)} live advertisements exist for object "
                    f"{winner.object_id}",
                    code=codes.MULTIPLE_ACTIVE_ADVERTISEMENTS,
                    metadata={"object_id": winner.object_id},
                )
            )
        size_bytes = self._stored_size(run, winner)

        run.advance(RenewalStage.VALIDATING)
        prev_expiry = winner.expiry_time
        new_expiry = prev_expiry + request.additional_minutes * 60
        custom_time = self._retention_time(run, new_expiry)
        amount = 0
        if size_bytes > 0:
            amount = self._pricing.price(
                size_bytes=size_bytes,
                retention_minutes=request.additional_minutes,
            )

        run.advance(RenewalStage.REDEEMING)
        if winner.fields is None:
            raise run.fail(
                not_found_error(
                    f"couldn't find old advertisement output for {request.uhrp_url}",
                    code=codes.OLD_ADVERTISEMENT_NOT_FOUND,
                    metadata={"outpoint": winner.outpoint},
                )
            )

        run.advance(RenewalStage.REISSUING)
        try:
            previous = decode_record(winner.fields)
        except MalformedRecordError as exc:
            raise run.fail(
                internal_error(
                    f"advertisement {winner.outpoint} is malformed: {exc}",
                    code=codes.MALFORMED_RECORD,
                    metadata={"outpoint": winner.outpoint},
                )
            ) from exc
        successor = previous.model_copy(update={"expiry_time": new_expiry})
        labels = labels_for(
            successor,
            object_id=winner.object_id,
            uploader_identity=winner.uploader_identity or request.uploader_identity_key,
            content_type=winner.content_type,
        )
        try:
            transaction = self._ledger.spend_and_create(
                collection=self._settings.collection,
                outpoint=winner.outpoint,
                fields=encode_record(successor),
                labels=labels,
                satoshis=self._settings.output_satoshis,
                description=f"Renew advertisement for uhrpUrl {request.uhrp_url}",
            )
        except (SpendConflictError, SpendAuthorizationError) as exc:
            raise run.fail(
                conflict_error(
                    f"old advertisement {winner.outpoint} could not be redeemed: {exc}",
                    code=codes.SIGNING_OLD_ADVERTISEMENT,
                    retryable=True,
                    metadata={"outpoint": winner.outpoint},
                )
            ) from exc
        except LedgerError as exc:
            raise run.fail(
                dependency_error(
                    f"old advertisement could not be redeemed and replaced: {exc}",
                    code=codes.CREATE_ACTION_FAILED,
                )
            ) from exc

        run.advance(RenewalStage.BROADCASTING)
        try:
            self._ledger.relay(transaction=transaction, topics=self._settings.topics)
        except LedgerError as exc:
            raise run.fail(
                dependency_error(
                    f"renewed advertisement {transaction.txid} was not relayed: {exc}",
                    code=codes.RELAY_FAILED,
                    metadata={"txid": transaction.txid},
                )
            ) from exc

        run.advance(RenewalStage.UPDATING_BACKING_STORE)
        try:
            self._object_store.set_custom_time(
                object_path=f"cdn/{winner.object_id}", custom_time=custom_time
            )
        except Exception as exc:  # noqa: BLE001
            raise run.fail(
                dependency_error(
                    f"backing store retention update failed: {type(exc).__name__}",
                    code=codes.BACKING_STORE_UPDATE,
                    metadata={"object_id": winner.object_id, "txid": transaction.txid},
                )
            ) from exc

        run.advance(RenewalStage.DONE)
        return RenewalResult(
            prev_expiry_time=prev_expiry,
            new_expiry_time=new_expiry,
            amount=amount,
            transaction_id=transaction.txid,
        )

    def _retention_time(self, run: RenewalRun, new_expiry: int) -> datetime:
        """Backing-store retention marker for ``new_expiry``, checked before any spend."""
        try:
            if new_expiry > MAX_VARINT:
                raise ValueError(f"expiry {new_expiry} does not fit a varint")
            return datetime.fromtimestamp(
                new_expiry + self._settings.retention_grace_seconds, tz=UTC
            )
        except (ValueError, OverflowError, OSError) as exc:
            raise run.fail(
                validation_error(
                    f"renewed expiry is out of range: {exc}",
                    code=codes.INVALID_TIME,
                    metadata={"new_expiry_time": str(new_expiry)},
                )
            ) from exc

    def _stored_size(self, run: RenewalRun, winner: IndexCandidate) -> int:
        """Size from backing metadata, else the advertised length, else zero."""
        try:
            metadata = self._object_store.get_metadata(
                object_path=f"cdn/{winner.object_id}"
            )
        except ObjectNotFoundError:
            return winner.content_length or 0
        except Exception as exc:  # noqa: BLE001
            raise run.fail(
                dependency_error(
                    f"backing store metadata unavailable: {type(exc).__name__}",
                    code=codes.BACKING_STORE_UNAVAILABLE,
                )
            ) from exc
        return metadata.size
