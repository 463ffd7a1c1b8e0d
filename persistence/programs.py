from __future__ import annotations

import hashlib
import logging
import threading
from typing import Sequence

from patch_engine.errors import PatchResult, ProgramRegistrationError
from patch_engine.operations import FieldOperation
from patch_engine.programs import PatchProgram

from .interfaces import DocumentLocation, R, Transform

logger = logging.getLogger(__name__)


def program_handle(name: str, program: PatchProgram) -> str:
    """Opaque handle for a program: sha1 of its registered name and qualified name."""
    ident = f"{name}:{program.__module__}.{getattr(program, '__qualname__', repr(program))}"
    return hashlib.sha1(ident.encode("utf-8")).hexdigest()


class ProgramHostStore:
    """
    Shared program table for stores: programs are loaded under a name and then
    invoked by handle, each invocation running inside `atomic_update`.

    Subclasses implement read/write/atomic_update and may override
    `_check_ready` to reject registration when the backend is unusable.
    """

    def __init__(self) -> None:
        self._programs_guard = threading.Lock()
        self._programs: dict[str, PatchProgram] = {}

    # --- to be provided by subclasses -------------------------------------

    def read(self, location: DocumentLocation) -> str | None:
        raise NotImplementedError

    def write(self, location: DocumentLocation, text: str) -> None:
        raise NotImplementedError

    def atomic_update(self, location: DocumentLocation, transform: Transform[R]) -> R:
        raise NotImplementedError

    def close(self) -> None:
        return None

    def _check_ready(self) -> None:
        return None

    # --- program table ----------------------------------------------------

    def load_program(self, name: str, program: PatchProgram) -> str:
        if not name:
            raise ProgramRegistrationError("program name must be non-empty", name=name)
        if not callable(program):
            raise ProgramRegistrationError(f"program {name!r} is not callable", name=name)
        self._check_ready()

        handle = program_handle(name, program)
        with self._programs_guard:
            self._programs[handle] = program
        logger.debug("PROGRAM LOAD: %s -> %s", name, handle)
        return handle

    def has_program(self, handle: str) -> bool:
        with self._programs_guard:
            return handle in self._programs

    def invoke(
        self, handle: str, location: DocumentLocation, operations: Sequence[FieldOperation]
    ) -> PatchResult:
        with self._programs_guard:
            program = self._programs.get(handle)
        if program is None:
            raise ProgramRegistrationError(f"no program loaded with handle {handle}")
        return self.atomic_update(location, lambda current: program(current, operations))
