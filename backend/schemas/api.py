from __future__ import annotations

from pydantic import BaseModel, Field

from schemas.entities import Transformation, VaultIdentity


# --- Disguise Schemas ---

class TransformationRequest(BaseModel):
    transform_type: str = Field(..., max_length=20)
    table_name: str = Field(..., min_length=1, max_length=255)
    predicate: str | None = None
    foreign_key: str | None = Field(None, max_length=255)
    changes: str | None = None

    def to_transformation(self) -> Transformation:
        return Transformation(
            kind=self.transform_type,
            table=self.table_name,
            predicate=self.predicate,
            foreign_key=self.foreign_key,
            changes=self.changes,
        )


class Requirement(BaseModel):
    """A policy request from the web app or a user."""

    disguise_name: str = Field(..., min_length=1, max_length=50)
    vault_id: str | None = Field(None, max_length=100)
    delete_age: int | None = Field(None, ge=0)
    delete_name: str | None = Field(None, max_length=50)
    transformations: list[TransformationRequest] | None = None

    def to_transformations(self) -> list[Transformation]:
        return [t.to_transformation() for t in self.transformations or []]


class PolicyResponse(BaseModel):
    message: str
    disguise_id: int | None = None
    functions: int = 0


class ClearVaultResponse(BaseModel):
    message: str
    disguises_removed: int


# --- Vault Schemas ---

class GeneratePlaceholder(BaseModel):
    table: str = Field(..., min_length=1, max_length=255)
    primary_key_name: str = Field(..., min_length=1, max_length=255)
    fields: str = Field(..., min_length=1)
    field_values: str = Field(..., min_length=1)


class GenerateVault(BaseModel):
    vault_id: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    generate_placeholder: GeneratePlaceholder


class VaultResponse(BaseModel):
    vault_id: str
    email: str
    placeholder_table: str
    placeholder_predicate: str

    @classmethod
    def from_identity(cls, identity: VaultIdentity) -> VaultResponse:
        return cls(
            vault_id=identity.vault_id,
            email=identity.email,
            placeholder_table=identity.placeholder.table,
            placeholder_predicate=identity.placeholder.predicate,
        )
