from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, model_validator


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    TYPE_MISMATCH = "type_mismatch"
    MALFORMED_DOCUMENT = "malformed_document"
    TRANSPORT_FAILURE = "transport_failure"
    PROGRAM_REGISTRATION_FAILURE = "program_registration_failure"


class PatchFailure(BaseModel):
    kind: FailureKind
    message: str
    field: str | None = None
    # Position of the failing operation within its batch.
    index: int | None = None


class PatchResult(BaseModel):
    """
    Outcome of one atomic patch call: either the new document text or a failure,
    never both.
    """

    document: str | None = None
    error: PatchFailure | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "PatchResult":
        if (self.document is None) == (self.error is None):
            raise ValueError("PatchResult needs exactly one of document/error")
        return self

    @classmethod
    def success(cls, document: str) -> "PatchResult":
        return cls(document=document)

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        message: str,
        *,
        field: str | None = None,
        index: int | None = None,
    ) -> "PatchResult":
        return cls(error=PatchFailure(kind=kind, message=message, field=field, index=index))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise PatchFailedError(self.error)
        return self.document or ""


class PatchFailedError(Exception):
    """Raised by PatchResult.unwrap() for callers that prefer exceptions."""

    def __init__(self, failure: PatchFailure) -> None:
        super().__init__(f"{failure.kind.value}: {failure.message}")
        self.failure = failure

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind


class MalformedDocumentError(Exception):
    """
    Raised by the scanner when the text has no consistent value span
    (unterminated string, unbalanced brackets, missing separators).

    Attributes:
        position: Offset in the document where scanning gave up
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)
        self.position = position


class TransportError(Exception):
    """The store call could not be issued or its result could not be retrieved."""


class WrongTypeError(TransportError):
    """The key holds a value of a different shape (plain value vs hash)."""


class ConcurrentModificationError(TransportError):
    """Optimistic retries were exhausted while other writers kept changing the key."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class ProgramRegistrationError(Exception):
    """
    A patch program could not be loaded into the store, or a call named a handle
    the store does not know.
    """

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name
