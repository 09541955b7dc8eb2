"""Pydantic schemas for data quality findings."""
from enum import Enum
from pydantic import BaseModel, Field


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    CRITICAL = "critical"


SEVERITY_RANK = {Severity.CRITICAL: 3, Severity.WARN: 2, Severity.INFO: 1}


class DataQualityIssue(BaseModel):
    column: str
    missing_fraction: float = Field(..., ge=0.0, le=1.0)
    severity: Severity
    message: str


class QualityReport(BaseModel):
    table_name: str
    issues: list[DataQualityIssue]
    summary: str
