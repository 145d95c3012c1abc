"""Stable error codes returned to storage clients by this service."""

MISSING_IDENTITY_KEY = "ERR_MISSING_IDENTITY_KEY"
MISSING_FIELDS = "ERR_MISSING_FIELDS"
NO_UHRP_URL = "ERR_NO_UHRP_URL"
INVALID_UHRP_URL = "ERR_INVALID_UHRP_URL"
INVALID_TIME = "ERR_INVALID_TIME"
INVALID_PAGINATION = "ERR_INVALID_PAGINATION"
INVALID_ADVERTISEMENT = "ERR_INVALID_ADVERTISEMENT"

NOT_FOUND = "ERR_NOT_FOUND"
EXPIRED = "ERR_EXPIRED"
OLD_ADVERTISEMENT_NOT_FOUND = "ERR_OLD_ADVERTISEMENT_NOT_FOUND"

MULTIPLE_ACTIVE_ADVERTISEMENTS = "ERR_MULTIPLE_ACTIVE_ADVERTISEMENTS"
SIGNING_OLD_ADVERTISEMENT = "ERR_SIGNING_OLD_ADVERTISEMENT"

UNAUTHORIZED = "ERR_UNAUTHORIZED"

MALFORMED_RECORD = "ERR_MALFORMED_RECORD"
CREATE_ACTION_FAILED = "ERR_CREATE_ACTION_FAILED"
RELAY_FAILED = "ERR_RELAY_FAILED"
BACKING_STORE_UPDATE = "ERR_BACKING_STORE_UPDATE"
LEDGER_UNAVAILABLE = "ERR_LEDGER_UNAVAILABLE"
BACKING_STORE_UNAVAILABLE = "ERR_BACKING_STORE_UNAVAILABLE"
LIST_FAILED = "ERR_LIST"
INTERNAL_RENEW = "ERR_INTERNAL_RENEW"
