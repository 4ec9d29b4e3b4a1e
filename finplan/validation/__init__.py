"""Validation package."""

from finplan.validation.validator import PlanValidator

__all__ = ["PlanValidator"]
