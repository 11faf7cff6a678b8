"""
schemas/errors.py — Error envelope for every visitrank endpoint

A rejected ranking or reconciliation snapshot comes back as a 422 whose
`detail` lists each offending field by location (e.g. a visit_number of 9
at ["body", "site_visits", 0, "visit_number"]), so the console can point at
the bad record. 400 (unknown ranking filter) and 404 carry no detail.
`request_id` is the same value as the X-Request-ID response header and the
request_id bound into the log lines for that request.

Called by: main.py (exception handlers)
Depends on: pydantic
"""

from pydantic import BaseModel


class FieldError(BaseModel):
    loc: list[str | int]
    msg: str


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    request_id: str = ""
    detail: list[FieldError] | None = None
