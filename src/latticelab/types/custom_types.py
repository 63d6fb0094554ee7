"""
Module: types.custom_types
--------------------------
Scalar type aliases shared by the typed function signatures, and the base
class for the closed enumerations used for tagged dispatch.

Type Aliases
------------
- `scalar_float`:
    Python float or 0-d JAX float array
- `non_jax_number`:
    Plain Python int or float

Classes
-------
- `ClosedEnum`:
    String-valued enum whose `parse` rejects unknown tags
"""

from enum import Enum

from beartype.typing import Optional, Union
from jaxtyping import Array, Float

from latticelab.errors import InvalidInputError

scalar_float = Union[float, Float[Array, ""]]
non_jax_number = Union[int, float]


class ClosedEnum(str, Enum):
    """
    Description
    -----------
    A finite set of string tags. Unknown values fail fast with
    `InvalidInputError` instead of falling through to a default branch.
    """

    @classmethod
    def parse(cls, value: object, field: Optional[str] = None) -> "ClosedEnum":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as err:
            allowed = ", ".join(member.value for member in cls)
            raise InvalidInputError(
                f"must be one of [{allowed}], got {value!r}", field
            ) from err


__all__ = [
    "scalar_float",
    "non_jax_number",
    "ClosedEnum",
]
