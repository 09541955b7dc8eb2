"""
Data quality analyzer — missing-value findings derived from column metadata.
Thresholds apply to the missing fraction of the inference sample.
"""
from typing import Iterable, Optional

from models.column import ColumnMeta
from models.quality import SEVERITY_RANK, DataQualityIssue, Severity

MISSING_INFO_THRESHOLD = 0.05      # strictly above
MISSING_WARN_THRESHOLD = 0.2
MISSING_CRITICAL_THRESHOLD = 0.5

_MESSAGES = {
    Severity.CRITICAL: "Very high share of missing values",
    Severity.WARN: "Elevated share of missing values",
    Severity.INFO: "Missing values present",
}


def classify_missing_fraction(fraction: float) -> Optional[Severity]:
    if fraction >= MISSING_CRITICAL_THRESHOLD:
        return Severity.CRITICAL
    if fraction >= MISSING_WARN_THRESHOLD:
        return Severity.WARN
    if fraction > MISSING_INFO_THRESHOLD:
        return Severity.INFO
    return None


def compute_data_quality_issues(columns: Optional[Iterable[ColumnMeta]]) -> list[DataQualityIssue]:
    issues: list[DataQualityIssue] = []
    for col in columns or []:
        fraction = col.missing_fraction
        if fraction is None or fraction <= 0:
            continue
        severity = classify_missing_fraction(fraction)
        if severity is None:
            continue
        issues.append(DataQualityIssue(
            column=col.name,
            missing_fraction=fraction,
            severity=severity,
            message=f"{_MESSAGES[severity]} ({fraction * 100:.1f}%)",
        ))

    issues.sort(key=lambda i: (SEVERITY_RANK[i.severity], i.missing_fraction), reverse=True)
    return issues


def summarize_issues(issues: list[DataQualityIssue]) -> str:
    if not issues:
        return "No significant data quality issues detected."
    crit = sum(1 for i in issues if i.severity is Severity.CRITICAL)
    warn = sum(1 for i in issues if i.severity is Severity.WARN)
    info = sum(1 for i in issues if i.severity is Severity.INFO)
    parts = [
        f"{crit} critical" if crit else None,
        f"{warn} warning(s)" if warn else None,
        f"{info} info" if info else None,
    ]
    return " · ".join(p for p in parts if p)
