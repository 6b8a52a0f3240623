"""Pydantic data models for floe-catalog.

This module provides:
- NamespaceState / TableState: Lifecycle states stored in the catalog
- NamespaceDescriptor: Namespace name and configuration
- ColumnFamilyDescriptor: Column family of a table
- TableName: ``namespace:qualifier`` table identifier
- TableDescriptor: Table name, column families and configuration
- Reserved namespace constants
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

DEFAULT_NAMESPACE_NAME = "default"
SYSTEM_NAMESPACE_NAME = "system"

# Created once at bootstrap; never created, modified or deleted afterwards.
RESERVED_NAMESPACES: frozenset[str] = frozenset({DEFAULT_NAMESPACE_NAME, SYSTEM_NAMESPACE_NAME})

META_TABLE_QUALIFIER = "meta"
NAMESPACE_DELIMITER = ":"

_NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
_QUALIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


def is_reserved(name: str) -> bool:
    """Return True if ``name`` is one of the reserved namespaces."""
    return name in RESERVED_NAMESPACES


def validate_namespace_name(name: str) -> str:
    """Validate a namespace name.

    Raises:
        ValueError: If the name contains characters other than letters,
            digits and underscores.
    """
    if not _NAMESPACE_PATTERN.match(name):
        msg = f"Illegal namespace name {name!r}: use letters, digits and '_'"
        raise ValueError(msg)
    return name


class NamespaceState(str, Enum):
    """Namespace lifecycle state.

    A namespace without a catalog record is ABSENT.
    """

    CREATING = "creating"
    ACTIVE = "active"
    DELETING = "deleting"


class TableState(str, Enum):
    """Table lifecycle state.

    Only DISABLED tables may be dropped.
    """

    CREATING = "creating"
    ENABLED = "enabled"
    DISABLED = "disabled"


class NamespaceDescriptor(BaseModel):
    """A namespace and its configuration.

    Attributes:
        name: Namespace name, unique and immutable once created.
        configuration: Free-form string settings shared by the namespace's tables.

    Example:
        >>> ns = NamespaceDescriptor(name="bronze", configuration={"owner": "data_team"})
        >>> ns.with_configuration(tier="raw").configuration
        {'owner': 'data_team', 'tier': 'raw'}
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        min_length=1,
        description="Namespace name",
    )
    configuration: dict[str, str] = Field(
        default_factory=dict,
        description="Namespace configuration",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate namespace name characters."""
        return validate_namespace_name(v)

    @property
    def is_reserved(self) -> bool:
        """Whether this is the default or system namespace."""
        return is_reserved(self.name)

    def with_configuration(self, **settings: str) -> NamespaceDescriptor:
        """Return a copy with ``settings`` added or replaced."""
        return self.model_copy(update={"configuration": {**self.configuration, **settings}})

    def without_configuration(self, *keys: str) -> NamespaceDescriptor:
        """Return a copy with ``keys`` removed from the configuration."""
        remaining = {k: v for k, v in self.configuration.items() if k not in keys}
        return self.model_copy(update={"configuration": remaining})


DEFAULT_NAMESPACE = NamespaceDescriptor(name=DEFAULT_NAMESPACE_NAME)
SYSTEM_NAMESPACE = NamespaceDescriptor(name=SYSTEM_NAMESPACE_NAME)


class ColumnFamilyDescriptor(BaseModel):
    """A column family of a table."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Column family name")
    configuration: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Column family names become directory names."""
        if not _QUALIFIER_PATTERN.match(v):
            msg = f"Illegal column family name {v!r}"
            raise ValueError(msg)
        return v


class TableName(BaseModel):
    """Table identifier with namespace and qualifier.

    Attributes:
        namespace: Owning namespace.
        qualifier: Table name inside the namespace.

    Example:
        >>> str(TableName(namespace="NS1", qualifier="T1"))
        'NS1:T1'
        >>> TableName.from_string("T1").namespace
        'default'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str = Field(default=DEFAULT_NAMESPACE_NAME, min_length=1)
    qualifier: str = Field(..., min_length=1)

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        return validate_namespace_name(v)

    @field_validator("qualifier")
    @classmethod
    def validate_qualifier(cls, v: str) -> str:
        if not _QUALIFIER_PATTERN.match(v):
            msg = f"Illegal table qualifier {v!r}"
            raise ValueError(msg)
        return v

    def __str__(self) -> str:
        """Return the ``namespace:qualifier`` form."""
        return f"{self.namespace}{NAMESPACE_DELIMITER}{self.qualifier}"

    @classmethod
    def from_string(cls, name: str | TableName) -> TableName:
        """Parse ``namespace:qualifier``; a bare qualifier binds to the default namespace.

        Raises:
            ValueError: If the name has more than one delimiter or illegal characters.
        """
        if isinstance(name, TableName):
            return name
        parts = name.split(NAMESPACE_DELIMITER)
        if len(parts) == 1:
            return cls(qualifier=parts[0])
        if len(parts) == 2:
            return cls(namespace=parts[0], qualifier=parts[1])
        msg = f"Invalid table name {name!r}: expected 'namespace:qualifier'"
        raise ValueError(msg)

    @property
    def is_system(self) -> bool:
        """Whether the table lives in the system namespace."""
        return self.namespace == SYSTEM_NAMESPACE_NAME


META_TABLE_NAME = TableName(namespace=SYSTEM_NAMESPACE_NAME, qualifier=META_TABLE_QUALIFIER)


class TableDescriptor(BaseModel):
    """A table, its column families and configuration.

    Example:
        >>> desc = TableDescriptor.of("NS1:T1", "my_cf")
        >>> desc.family_names
        ('my_cf',)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    table_name: TableName
    column_families: tuple[ColumnFamilyDescriptor, ...] = Field(..., min_length=1)
    configuration: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def families_must_be_unique(self) -> Self:
        """Reject duplicate column family names."""
        names = [cf.name for cf in self.column_families]
        if len(names) != len(set(names)):
            msg = f"Duplicate column families in {self.table_name}: {names}"
            raise ValueError(msg)
        return self

    @classmethod
    def of(cls, name: str | TableName, *families: str, **configuration: str) -> TableDescriptor:
        """Build a descriptor from a table name and column family names."""
        return cls(
            table_name=TableName.from_string(name),
            column_families=tuple(ColumnFamilyDescriptor(name=f) for f in families),
            configuration=configuration,
        )

    @property
    def namespace(self) -> str:
        return self.table_name.namespace

    @property
    def qualifier(self) -> str:
        return self.table_name.qualifier

    @property
    def family_names(self) -> tuple[str, ...]:
        return tuple(cf.name for cf in self.column_families)

    def has_family(self, name: str) -> bool:
        return name in self.family_names
