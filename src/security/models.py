"""Pydantic models for security configuration."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from registry.models import parse_felt


CallerKind = Literal["account", "contract"]


class CallerEntry(BaseModel):
    address: int
    label: Optional[str] = None

    @field_validator("address", mode="before")
    @classmethod
    def _parse(cls, value: object) -> int:
        return parse_felt(value)


class DefaultSecurity(BaseModel):
    unknown_caller_kind: CallerKind = Field(default="contract")
    reserved_selectors: List[int] = Field(default_factory=list)
    enforce_namespace_write_on_register: bool = Field(default=False)

    @field_validator("reserved_selectors", mode="before")
    @classmethod
    def _parse_selectors(cls, value: object) -> object:
        if value is None:
            return []
        return [parse_felt(item) for item in value]  # type: ignore[union-attr]


class SecurityConfig(BaseModel):
    version: int = Field(default=1)
    default: DefaultSecurity = Field(default_factory=DefaultSecurity)
    accounts: List[CallerEntry] = Field(default_factory=list)
    contracts: List[CallerEntry] = Field(default_factory=list)
