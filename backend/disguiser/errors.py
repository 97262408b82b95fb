"""Exception taxonomy for the disguise engine.

Store-layer errors (connectivity, rejected writes) are never wrapped here:
they propagate from SQLAlchemy unchanged.
"""

from __future__ import annotations


class DisguiseError(Exception):
    """Base class for every error the engine raises on purpose."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(DisguiseError):
    """Malformed request, unsupported transformation kind, or a write that
    matched nothing."""

    status_code = 400


class UnsupportedColumnTypeError(InvalidInputError):
    """A snapshotted column has a type outside Text/Integer/Timestamp."""

    def __init__(self, table: str, column: str, type_name: str) -> None:
        super().__init__(
            f"Column {table}.{column} has unsupported type {type_name!r}; "
            "only text, integer and timestamp columns can be disguised."
        )
        self.table = table
        self.column = column
        self.type_name = type_name


class NotFoundError(DisguiseError):
    """A vault identity or disguise lookup missed."""

    status_code = 404


class NoMatchError(DisguiseError):
    """A selection returned zero rows, or the store rejected its predicate.

    The two cases share this type. When the store rejected the predicate the
    original database error is available as ``__cause__``.
    """

    status_code = 404

    def __init__(self, table: str, predicate: str) -> None:
        super().__init__(
            f"The input \"table\" or \"predicate\" is not correct: "
            f"nothing selected from {table} where {predicate}"
        )
        self.table = table
        self.predicate = predicate
