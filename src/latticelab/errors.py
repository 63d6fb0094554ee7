"""
Module: errors
--------------
Exception hierarchy raised by the computation engine.

Classes
-------
- `EngineError`:
    Base class, carries the offending request field and violated constraint
- `InvalidInputError`:
    The request violates a documented precondition
- `DegenerateLatticeError`:
    The real-space basis is numerically singular
"""

from beartype.typing import Dict, Optional


class EngineError(Exception):
    """
    Description
    -----------
    Base class for all engine failures. Every failure is terminal for the
    request that produced it: the engine is pure, so recomputing the same
    request fails the same way.

    Attributes
    ----------
    - `kind` (str):
        Stable error tag reported to the caller
    - `field` (Optional[str]):
        Dotted path of the offending request field, if known
    - `constraint` (str):
        Human readable description of the violated constraint
    """

    kind: str = "EngineError"

    def __init__(self, constraint: str, field: Optional[str] = None) -> None:
        self.field = field
        self.constraint = constraint
        if field is None:
            super().__init__(constraint)
        else:
            super().__init__(f"{field}: {constraint}")

    def to_payload(self) -> Dict[str, Optional[str]]:
        """Error body in the `{error, details}` shape used by the transport."""
        return {
            "error": self.kind,
            "details": str(self),
            "field": self.field,
        }


class InvalidInputError(EngineError, ValueError):
    """Request violates a documented precondition."""

    kind = "InvalidInput"


class DegenerateLatticeError(InvalidInputError):
    """Basis matrix is singular within the configured tolerance."""

    kind = "DegenerateLattice"


__all__ = ["EngineError", "InvalidInputError", "DegenerateLatticeError"]
