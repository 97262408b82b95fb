from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime

# Separator between per-column literals in a stored ``original`` string.
VALUE_SEPARATOR = ", "


def split_values(original: str) -> list[str]:
    """Split a stored ``original`` string back into per-column literals.

    Separators inside single-quoted literals are kept, so text values that
    themselves contain ``", "`` survive the round trip.
    """
    if original == "":
        return []
    values: list[str] = []
    current: list[str] = []
    in_quote = False
    i = 0
    while i < len(original):
        ch = original[i]
        if ch == "'":
            # a doubled quote toggles twice and stays inside the literal
            in_quote = not in_quote
        elif not in_quote and original.startswith(VALUE_SEPARATOR, i):
            values.append("".join(current))
            current = []
            i += len(VALUE_SEPARATOR)
            continue
        current.append(ch)
        i += 1
    values.append("".join(current))
    return values


class TransformKind(str, enum.Enum):
    """The three fundamental operations a disguise is made of."""

    REMOVAL = "removal"
    MODIFICATION = "modification"
    DECORRELATION = "decorrelation"

    @classmethod
    def parse(cls, value: str | TransformKind) -> TransformKind | None:
        """Case-insensitive lookup; ``None`` for anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class SemanticType(str, enum.Enum):
    TEXT = "text"
    INTEGER = "integer"
    TIMESTAMP = "timestamp"
    UNSUPPORTED = "unsupported"


@dataclass
class Transformation:
    """A planned or concrete operation against one table.

    ``kind`` stays a raw string until the executor dispatches on it, so that a
    request naming an unknown kind is rejected there rather than at parse time.
    For an age-based owner template ``predicate`` holds a bare column name.
    """

    kind: str
    table: str
    predicate: str | None = None
    foreign_key: str | None = None
    changes: str | None = None

    @property
    def transform_kind(self) -> TransformKind | None:
        return TransformKind.parse(self.kind)

    def with_predicate(self, predicate: str) -> Transformation:
        return replace(self, predicate=predicate)


@dataclass(frozen=True)
class ColumnInfo:
    """One column of a target table as reported by schema introspection."""

    name: str
    semantic_type: SemanticType
    is_primary_key: bool
    type_name: str = ""


@dataclass(frozen=True)
class Field:
    """A single column value of a snapshotted row.

    ``display_value`` is the string form of the value, ``None`` for SQL NULL.
    """

    name: str
    semantic_type: SemanticType
    display_value: str | None

    @property
    def literal(self) -> str:
        """Render the value as a literal of the store's query language."""
        if self.display_value is None:
            return "NULL"
        if self.semantic_type is SemanticType.INTEGER:
            return self.display_value
        return "'" + self.display_value.replace("'", "''") + "'"

    @property
    def predicate(self) -> str:
        """``name=value`` selecting rows that carry this exact value."""
        return f"{self.name}={self.literal}"


@dataclass(frozen=True)
class Target:
    """A row snapshot taken before mutation."""

    fields: tuple[Field, ...]
    primary_key_index: int

    def __post_init__(self) -> None:
        if not 0 <= self.primary_key_index < len(self.fields):
            raise ValueError(
                f"primary_key_index {self.primary_key_index} out of range "
                f"for {len(self.fields)} fields"
            )

    def primary_key(self) -> Field:
        return self.fields[self.primary_key_index]

    def foreign_key(self, name: str) -> Field | None:
        """Return the field called *name*, or ``None`` if the row has none."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def primary_key_predicate(self) -> str:
        return self.primary_key().predicate

    def field_values(self) -> str:
        """All values as literals, in schema order, joined for storage."""
        return VALUE_SEPARATOR.join(f.literal for f in self.fields)


@dataclass
class PlaceholderLocator:
    """Where a vault's anonymised placeholder row lives in the target store."""

    table: str
    predicate: str

    @property
    def assignment(self) -> str:
        """The column assignment that repoints a foreign key to the placeholder.

        The placeholder's primary-key predicate (``contact_id=0``) doubles as
        the assignment, since referencing columns share the key's name.
        """
        return self.predicate

    def to_json(self) -> dict[str, str]:
        return {"table": self.table, "pred": self.predicate}

    @classmethod
    def from_json(cls, data: dict) -> PlaceholderLocator:
        return cls(table=data["table"], predicate=data["pred"])


@dataclass
class VaultIdentity:
    vault_id: str
    email: str
    placeholder: PlaceholderLocator


@dataclass
class FunctionRecord:
    """One row-level undo step as persisted in the vault."""

    function_type: str
    table: str
    predicate: str
    original_values: str
    updated_values: str
    disguise_id: int | None = None
    function_id: int | None = None


@dataclass
class DisguiseRecord:
    """A disguise header together with its Functions in stored order."""

    policy_name: str
    vault_id: str
    applied_at: datetime
    functions: list[FunctionRecord] = field(default_factory=list)
    disguise_id: int | None = None


@dataclass(frozen=True)
class RetentionCriterion:
    """Which disguises a retention sweep selects.

    Exactly one of ``max_age_years`` or the ``(vault_id, policy_name)`` pair
    is set; build instances through :meth:`by_age` / :meth:`by_name`.
    """

    max_age_years: int | None = None
    vault_id: str | None = None
    policy_name: str | None = None

    @classmethod
    def by_age(cls, years: int) -> RetentionCriterion:
        if years < 0:
            raise ValueError("retention age must not be negative")
        return cls(max_age_years=years)

    @classmethod
    def by_name(cls, vault_id: str, policy_name: str) -> RetentionCriterion:
        if not vault_id or not policy_name:
            raise ValueError("both vault_id and policy_name are required")
        return cls(vault_id=vault_id, policy_name=policy_name)

    @property
    def is_age_based(self) -> bool:
        return self.max_age_years is not None
