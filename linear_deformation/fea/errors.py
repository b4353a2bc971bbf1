"""Exception and warning types raised by the deformation analyses."""
from __future__ import annotations

from typing import Iterable


class ModelDataError(ValueError):
    """Base class for problems with the model data records."""


class MissingRequiredInput(ModelDataError):
    """A required key is absent from a model data record."""

    def __init__(self, key: str, record: str) -> None:
        self.key = key
        self.record = record
        super().__init__(f"Must get {key!r} in {record} record.")


class MissingCollaborator(MissingRequiredInput):
    """A region (or traction) record does not name a region model machine."""


class UnrecognizedOption(ModelDataError):
    """A record carries keys outside the recognized set for its kind."""

    def __init__(
        self, keys: Iterable[str], record: str, recognized: Iterable[str]
    ) -> None:
        self.keys = sorted(str(k) for k in keys)
        self.record = record
        self.recognized = list(recognized)
        super().__init__(
            f"Unrecognized key(s) {self.keys} in {record} record. "
            f"Recognized keys: {self.recognized}"
        )


class FactorizationError(RuntimeError):
    """The stiffness (or mass) operator is not positive definite."""


class EigensolveNonConvergence(UserWarning):
    """Fewer eigenpairs were obtained than requested.

    Issued through :func:`warnings.warn`; the analysis still completes and
    reports the converged count.
    """
