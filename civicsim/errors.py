"""Exception hierarchy for the simulation kernel."""

from __future__ import annotations


class KernelError(Exception):
    """Base class for all kernel errors."""


class FatalSetupError(KernelError):
    """The cycle cannot start at all (e.g. the ledger backend is unreachable).

    Raised out of the phase boundary instead of being recorded as a phase
    failure, so the whole cycle aborts.
    """


class SchemaError(KernelError):
    """A ledger store is missing columns the kernel requires."""

    def __init__(self, store: str, missing: list[str]) -> None:
        self.store = store
        self.missing = missing
        super().__init__(f"{store} missing required column(s): {', '.join(missing)}")


class LedgerError(KernelError):
    """A backend read or write failed."""
