from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    JSON,
    Index,
)
from sqlalchemy.sql import func

from db.database import Base


class Vault(Base):
    __tablename__ = "vaults"

    vault_id = Column(String(100), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    # {"table": ..., "pred": ...} locating the placeholder row in the target store
    placeholder_info = Column(JSON, nullable=False)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Disguise(Base):
    __tablename__ = "disguises"

    disguise_id = Column(Integer, primary_key=True, autoincrement=True)
    applied_at = Column(DateTime(timezone=True), nullable=False)
    vault_id = Column(String(100), nullable=False)
    disguise_type = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_disguise_vault_type", "vault_id", "disguise_type"),
        Index("idx_disguise_applied_at", "applied_at"),
    )


class DisguiseFunction(Base):
    __tablename__ = "disguise_functions"

    function_id = Column(Integer, primary_key=True, autoincrement=True)
    disguise_id = Column(
        Integer,
        ForeignKey("disguises.disguise_id", ondelete="CASCADE"),
        nullable=False,
    )
    function_type = Column(String(20), nullable=False)
    table_name = Column(String(255), nullable=False)
    predicate = Column(Text, nullable=False)
    original = Column(Text, nullable=False)
    updated = Column(Text, nullable=False, default="", server_default="")

    __table_args__ = (
        Index("idx_function_disguise", "disguise_id", "function_id"),
    )
