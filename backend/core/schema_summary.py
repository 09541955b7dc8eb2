"""
Schema summary — a short description of a table's inferred shape.
Uses the LLM when a client is supplied and falls back to a type-grouped
heuristic when it is not, or when the call fails.
"""
import logging
from typing import Optional

from pydantic import BaseModel

from core.data_quality import compute_data_quality_issues
from core.type_classifier import extract_foreign_keys
from integrations.ollama_client import OllamaClient
from models.column import ColumnMeta
from prompts.schema_summary import schema_summary_prompt

logger = logging.getLogger(__name__)


class SchemaSummary(BaseModel):
    summary: str
    from_ai: bool


def heuristic_summary(table: str, columns: list[ColumnMeta]) -> str:
    groups: dict[str, list[str]] = {}
    for c in columns:
        groups.setdefault(c.type.value, []).append(c.name + ("?" if c.nullable else ""))
    lines = [f"- {t}: {', '.join(names)}" for t, names in sorted(groups.items())]
    return f"Table {table}: {len(columns)} columns.\n" + "\n".join(lines)


def _format_columns(columns: list[ColumnMeta]) -> str:
    return ", ".join(f"{c.name}:{c.type.value}{'?' if c.nullable else ''}" for c in columns)


def _format_fks(columns: list[ColumnMeta]) -> str:
    hints = extract_foreign_keys(columns)
    if not hints:
        return "None"
    return "\n".join(f"  - {h.column} → {h.ref}" for h in hints)


def _format_quality(columns: list[ColumnMeta]) -> str:
    issues = compute_data_quality_issues(columns)
    if not issues:
        return "None"
    return "\n".join(f"  - {i.column}: {i.message}" for i in issues)


def summarize_table_schema(table: str, columns: list[ColumnMeta], ollama: Optional[OllamaClient] = None) -> SchemaSummary:
    if not columns:
        return SchemaSummary(summary="No columns available.", from_ai=False)
    if ollama is None:
        return SchemaSummary(
            summary=heuristic_summary(table, columns) + "\n(Note: AI summary disabled, heuristic used.)",
            from_ai=False,
        )

    prompt_text = schema_summary_prompt.format(
        table_name=table,
        column_list=_format_columns(columns),
        fk_hints=_format_fks(columns),
        quality_findings=_format_quality(columns),
    )
    try:
        text = ollama.generate(prompt_text)
    except RuntimeError as e:
        logger.warning("AI schema summary for %s failed: %s", table, e)
        return SchemaSummary(summary=heuristic_summary(table, columns) + f"\n(AI error: {e})", from_ai=False)
    if not text:
        return SchemaSummary(summary=heuristic_summary(table, columns), from_ai=False)
    return SchemaSummary(summary=text, from_ai=True)
