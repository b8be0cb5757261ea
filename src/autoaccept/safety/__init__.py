"""
safety/__init__.py — autoaccept Risk Assessment Module
"""

from autoaccept.safety.categories import OPERATION_CATEGORIES, is_operation_allowed
from autoaccept.safety.patterns import test_pattern, validate_pattern
from autoaccept.safety.risk_assessor import RiskAssessor
from autoaccept.safety.types import (
    CheckName,
    Decision,
    OperationRequest,
    PatternValidation,
    RiskAssessment,
    RiskLevel,
    SecurityCheck,
)

__all__ = [
    "RiskAssessor",
    "OPERATION_CATEGORIES",
    "is_operation_allowed",
    "test_pattern",
    "validate_pattern",
    "CheckName",
    "Decision",
    "OperationRequest",
    "PatternValidation",
    "RiskAssessment",
    "RiskLevel",
    "SecurityCheck",
]
