"""Public schema exports."""

from .company import CompanyInfo

__all__ = ["CompanyInfo"]
