"""Host-wide fallback codes.

Operation-specific codes live in each service's ``codes`` module. These cover
failures that no service claims: malformed requests rejected by the HTTP layer,
unknown routes and faults that escaped a service.
"""

INVALID_REQUEST = "ERR_INVALID_REQUEST"
ROUTE_NOT_FOUND = "ERR_ROUTE_NOT_FOUND"
NOT_FOUND = "ERR_NOT_FOUND"
CONFLICT = "ERR_CONFLICT"
FORBIDDEN = "ERR_FORBIDDEN"
UPSTREAM = "ERR_UPSTREAM"
INTERNAL = "ERR_INTERNAL"
