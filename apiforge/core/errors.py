"""Typed errors raised by the specification, generation, deployment and store layers."""
from typing import Iterable, List


class ApiForgeError(Exception):
    """Base class for all domain errors."""


class ValidationError(ApiForgeError):
    """A specification (or project metadata) violates one or more invariants."""

    def __init__(self, violations: Iterable[str]):
        self.violations: List[str] = list(violations)
        super().__init__("; ".join(self.violations) or "invalid specification")


class InvalidSpecError(ApiForgeError):
    """The specification is not ready for generation."""


class TemplateError(ApiForgeError):
    """A renderer failed or produced an unusable file set."""


class EmptyBundleError(ApiForgeError):
    """Deployment was attempted with an output bundle that has no files."""


class NoOutputError(ApiForgeError):
    """Deployment was attempted before anything was generated."""


class StoreUnavailableError(ApiForgeError):
    """The persistence collaborator could not complete a read or write."""


class NotFoundError(ApiForgeError):
    """A project, version or deployment id does not exist."""


class InvalidTransitionError(ApiForgeError):
    """A deployment record was moved out of a terminal state."""


class ConflictError(ApiForgeError):
    """The project changed in storage since the operation loaded it."""


class LedgerIntegrityError(ApiForgeError):
    """A project's version number disagrees with its version ledger."""
