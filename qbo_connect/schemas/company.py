"""Schemas for QuickBooks API payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CompanyInfo(BaseModel):
    """Subset of the ``CompanyInfo`` entity used to confirm a connection."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = Field(None, alias="Id")
    company_name: str = Field(..., alias="CompanyName")
    legal_name: Optional[str] = Field(None, alias="LegalName")
    country: Optional[str] = Field(None, alias="Country")


__all__ = ["CompanyInfo"]
