# Overview: Caller identities (admin, employee, client) as a tagged union.

"""
Principals

The upstream gateway authenticates; this module only models who the caller
is. Each variant carries the fields relevant to it and nothing else. Code
that needs "something with an id" or "something with a display name" asks for
the capability protocol instead of a concrete class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union, runtime_checkable


KIND_ADMIN = "admin"
KIND_EMPLOYEE = "employee"
KIND_CLIENT = "client"


@runtime_checkable
class Authenticatable(Protocol):
    kind: str
    ref: str


@runtime_checkable
class HasProfile(Protocol):
    @property
    def display_name(self) -> str: ...


@dataclass(frozen=True)
class Admin:
    ref: str
    name: Optional[str] = None
    kind: str = KIND_ADMIN

    @property
    def display_name(self) -> str:
        return self.name or "Admin"


@dataclass(frozen=True)
class Employee:
    ref: str
    first_name: str = ""
    last_name: str = ""
    employee_code: Optional[str] = None
    kind: str = KIND_EMPLOYEE

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.employee_code or self.ref


@dataclass(frozen=True)
class Client:
    ref: str
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    kind: str = KIND_CLIENT

    @property
    def display_name(self) -> str:
        return self.contact_person or self.company_name or "Client"


Principal = Union[Admin, Employee, Client]

PRINCIPAL_KINDS = (KIND_ADMIN, KIND_EMPLOYEE, KIND_CLIENT)


def build_principal(kind: str, ref: str, name: Optional[str] = None) -> Principal:
    """Build the variant for ``kind`` from gateway-supplied identity fields."""
    if not ref:
        raise ValueError("principal ref is required")
    if kind == KIND_ADMIN:
        return Admin(ref=ref, name=name)
    if kind == KIND_EMPLOYEE:
        first, _, last = (name or "").partition(" ")
        return Employee(ref=ref, first_name=first, last_name=last)
    if kind == KIND_CLIENT:
        return Client(ref=ref, contact_person=name)
    raise ValueError(f"Unknown principal kind '{kind}'")
