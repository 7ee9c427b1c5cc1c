from __future__ import annotations


class DomainError(Exception):
  """Base for errors raised by the board/issue core.

  Each subclass carries the HTTP status the API layer answers with; the
  message is safe to show to clients except for ``InternalError``.
  """

  kind = "domain_error"
  status_code = 400

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class NotFound(DomainError):
  kind = "not_found"
  status_code = 404


class Forbidden(DomainError):
  kind = "forbidden"
  status_code = 403


class InvalidRelation(DomainError):
  kind = "invalid_relation"
  status_code = 400


class InvalidState(DomainError):
  kind = "invalid_state"
  status_code = 400


class Conflict(DomainError):
  kind = "conflict"
  status_code = 409


class InternalError(DomainError):
  kind = "internal_error"
  status_code = 500
