"""Stable error codes returned to storage clients by this service."""

MISSING_IDENTITY_KEY = "ERR_MISSING_IDENTITY_KEY"
NO_SIZE = "ERR_NO_SIZE"
NO_RETENTION_PERIOD = "ERR_NO_RETENTION_PERIOD"
INVALID_SIZE = "ERR_INVALID_SIZE"
INVALID_RETENTION_PERIOD = "ERR_INVALID_RETENTION_PERIOD"

INVALID_SIGNATURE = "ERR_INVALID_SIGNATURE"
SIZE_MISMATCH = "ERR_SIZE_MISMATCH"
ALREADY_EXISTS = "ERR_ALREADY_EXISTS"

INTERNAL = "ERR_INTERNAL"
INTERNAL_UPLOAD = "ERR_INTERNAL_UPLOAD"
