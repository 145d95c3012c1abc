"""Ledger substrate backed by a wallet's JSON HTTP interface.

The wallet owns the host's keys. It builds PushDrop locking scripts from the
supplied fields, signs spends and decodes fields of listed outputs, so no key
material or script handling lives in this process. Signed transactions are
relayed to overlay hosts through their ``/submit`` endpoint.
"""

from __future__ import annotations

import json
from threading import Lock
from typing import Any, Sequence

from packages.uhrp_shared.http import (
    HttpClient,
    UpstreamError,
    UpstreamPayloadError,
    UpstreamStatusError,
)
from packages.uhrp_shared.logging import get_logger, public_api_instrumented
from resources.substrates.ledger.component import RESOURCE_COMPONENT_ID
from resources.substrates.ledger.config import LedgerSubstrateSettings
from resources.substrates.ledger.substrate import (
    LedgerDependencyError,
    LedgerHealthStatus,
    LedgerOutput,
    LedgerRelayError,
    LedgerSubstrate,
    LedgerTransaction,
    SpendAuthorizationError,
    SpendConflictError,
)

_LOGGER = get_logger(__name__)
_CONFLICT_STATUSES = frozenset({409})
_AUTHORIZATION_STATUSES = frozenset({401, 403})


class WalletLedgerSubstrate(LedgerSubstrate):
    """One wallet client per process, built at startup and closed at shutdown."""

    def __init__(
        self,
        *,
        settings: LedgerSubstrateSettings,
        wallet_client: HttpClient | None = None,
        relay_client: HttpClient | None = None,
    ) -> None:
        self._settings = settings
        self._wallet = wallet_client or HttpClient(
            base_url=settings.wallet_url,
            timeout_seconds=settings.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )
        self._relay = relay_client or HttpClient(timeout_seconds=settings.timeout_seconds)
        self._identity_lock = Lock()
        self._identity_key: str | None = None

    def identity_key(self) -> str:
        with self._identity_lock:
            if self._identity_key is None:
                payload = self._call("/getPublicKey", {"identityKey": True})
                self._identity_key = _require_str(payload, "publicKey")
            return self._identity_key

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("collection",),
    )
    def query_outputs(
        self,
        *,
        collection: str,
        labels: Sequence[str],
        match_all: bool = True,
        include_labels: bool = True,
        include_fields: bool = False,
        limit: int,
        offset: int,
    ) -> list[LedgerOutput]:
        payload = self._call(
            "/listOutputs",
            {
                "basket": collection,
                "tags": list(labels),
                "tagQueryMode": "all" if match_all else "any",
                "includeTags": include_labels,
                "includeFields": include_fields,
                "limit": limit,
                "offset": offset,
            },
        )
        raw_outputs = payload.get("outputs")
        if not isinstance(raw_outputs, list):
            raise LedgerDependencyError("wallet listOutputs returned no outputs array")
        return [_output_from_wallet(item) for item in raw_outputs]

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("collection",),
    )
    def create_output(
        self,
        *,
        collection: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        payload = self._call(
            "/createAction",
            {
                "description": description,
                "outputs": [self._output_request(collection, fields, labels, satoshis)],
                "options": {"randomizeOutputs": False},
            },
        )
        return _transaction_from_wallet(payload)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("outpoint",),
    )
    def spend_and_create(
        self,
        *,
        collection: str,
        outpoint: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        body = {
            "description": description,
            "inputs": [
                {
                    "outpoint": outpoint,
                    "basket": collection,
                    "inputDescription": "Redeem previous advertisement",
                    "pushDrop": self._protocol_request(),
                }
            ],
            "outputs": [self._output_request(collection, fields, labels, satoshis)],
            "options": {"randomizeOutputs": False},
        }
        try:
            payload = self._wallet.post_object("/createAction", json=body)
        except UpstreamStatusError as exc:
            if exc.status_code in _CONFLICT_STATUSES:
                raise SpendConflictError(
                    f"output {outpoint} is no longer spendable"
                ) from None
            if exc.status_code in _AUTHORIZATION_STATUSES:
                raise SpendAuthorizationError(
                    f"wallet refused to sign spend of {outpoint}"
                ) from None
            raise LedgerDependencyError(
                f"wallet createAction failed with status {exc.status_code}"
            ) from None
        except UpstreamError as exc:
            raise LedgerDependencyError(_wallet_failure(exc)) from None
        return _transaction_from_wallet(payload)

    @public_api_instrumented(logger=_LOGGER, component_id=str(RESOURCE_COMPONENT_ID))
    def relay(self, *, transaction: LedgerTransaction, topics: Sequence[str]) -> None:
        accepted = 0
        for host in self._settings.overlay_urls:
            try:
                self._relay.post(
                    f"{host}/submit",
                    content=transaction.raw,
                    headers={
                        "Content-Type": "application/octet-stream",
                        "X-Topics": json.dumps(list(topics)),
                    },
                )
            except UpstreamError as exc:
                _LOGGER.warning(
                    "overlay host rejected transaction",
                    extra={"overlay_host": host, "txid": transaction.txid, "error": str(exc)},
                )
                continue
            accepted += 1
        if accepted == 0:
            raise LedgerRelayError(
                f"no overlay host accepted transaction {transaction.txid}"
            )

    def health(self) -> LedgerHealthStatus:
        try:
            self.identity_key()
        except LedgerDependencyError as exc:
            return LedgerHealthStatus(ready=False, detail=str(exc))
        return LedgerHealthStatus(ready=True, detail="ok")

    def close(self) -> None:
        self._wallet.close()
        self._relay.close()

    def _protocol_request(self) -> dict[str, Any]:
        return {
            "protocolID": [
                self._settings.protocol_security_level,
                self._settings.protocol_name,
            ],
            "keyID": self._settings.key_id,
            "counterparty": self._settings.counterparty,
        }

    def _output_request(
        self,
        collection: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
    ) -> dict[str, Any]:
        return {
            "basket": collection,
            "tags": list(labels),
            "satoshis": satoshis,
            "outputDescription": "UHRP advertisement",
            "pushDrop": {
                **self._protocol_request(),
                "fields": [field.hex() for field in fields],
            },
        }

    def _call(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST one wallet call, mapping every failure to ``LedgerDependencyError``."""
        try:
            return self._wallet.post_object(path, json=body)
        except UpstreamStatusError as exc:
            raise LedgerDependencyError(
                f"wallet {path} failed with status {exc.status_code}"
            ) from None
        except UpstreamError as exc:
            raise LedgerDependencyError(_wallet_failure(exc)) from None


def _wallet_failure(exc: UpstreamError) -> str:
    if isinstance(exc, UpstreamPayloadError):
        return "wallet returned a payload that is not a JSON object"
    return "wallet unavailable"


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or value.strip() == "":
        raise LedgerDependencyError(f"wallet payload is missing '{key}'")
    return value.strip()


def _output_from_wallet(item: object) -> LedgerOutput:
    if not isinstance(item, dict):
        raise LedgerDependencyError("wallet output entry is not an object")
    raw_fields = item.get("fields")
    try:
        fields = (
            None
            if raw_fields is None
            else tuple(bytes.fromhex(str(value)) for value in raw_fields)
        )
        return LedgerOutput(
            outpoint=_require_str(item, "outpoint"),
            satoshis=int(item.get("satoshis", 0)),
            labels=tuple(str(label) for label in item.get("tags") or ()),
            fields=fields,
        )
    except (TypeError, ValueError) as exc:
        raise LedgerDependencyError("wallet output entry is malformed") from exc


def _transaction_from_wallet(payload: dict[str, Any]) -> LedgerTransaction:
    try:
        return LedgerTransaction(
            txid=_require_str(payload, "txid"),
            raw=bytes.fromhex(_require_str(payload, "tx")),
        )
    except ValueError as exc:
        raise LedgerDependencyError("wallet returned a malformed transaction") from exc
