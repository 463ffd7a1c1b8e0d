from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence, TypeVar

from patch_engine.errors import PatchResult
from patch_engine.operations import FieldOperation
from patch_engine.programs import PatchProgram

R = TypeVar("R")

# Receives the current text (None if absent), returns (text to write or None, result).
Transform = Callable[[str | None], tuple[str | None, R]]


@dataclass(frozen=True)
class DocumentLocation:
    """
    Where a document lives: the value of a plain key, or one field of a hash.
    """

    key: str
    hash_field: str | None = None

    @property
    def is_hash(self) -> bool:
        return self.hash_field is not None

    def describe(self) -> str:
        return self.key if self.hash_field is None else f"{self.key}.{self.hash_field}"


class AtomicDocumentStore(Protocol):
    """
    Minimal store interface: documents kept as opaque text under a location,
    plus an indivisible read-transform-write per location.
    """

    def read(self, location: DocumentLocation) -> str | None:
        """Return the stored text, or None if nothing is stored there."""
        ...

    def write(self, location: DocumentLocation, text: str) -> None:
        """Replace the stored text."""
        ...

    def atomic_update(self, location: DocumentLocation, transform: Transform[R]) -> R:
        """
        Run `transform` on the current text and store what it returns (unless it
        returns None), with no other update to the same location in between.
        """
        ...

    def load_program(self, name: str, program: PatchProgram) -> str:
        """Register a patch program and return its handle."""
        ...

    def invoke(
        self, handle: str, location: DocumentLocation, operations: Sequence[FieldOperation]
    ) -> PatchResult:
        """Run a registered program atomically against a location."""
        ...

    def close(self) -> None:
        ...
