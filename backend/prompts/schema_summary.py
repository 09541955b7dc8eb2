"""
LangChain prompt templates for Tabulens.
"""
from langchain_core.prompts import PromptTemplate

# ── Schema summary ────────────────────────────────────────────────────────────

SCHEMA_SUMMARY_TEMPLATE = """\
You are a senior data analyst reviewing a table in an unfamiliar database.
The column types below were inferred from a small sample of rows, and the
foreign key hints are naming-convention guesses only.

TABLE NAME: {table_name}

COLUMNS (name:type, "?" = nullable):
{column_list}

FOREIGN KEY HINTS (unverified):
{fk_hints}

DATA QUALITY FINDINGS:
{quality_findings}

Write a concise summary structured as:
- Purpose (presumed)
- Key / reference fields
- Important metrics or fields
- Quality / anomaly risks
- One suggestion for indexes or normalisation

Use at most 6 bullet points and nothing else.
"""

schema_summary_prompt = PromptTemplate(
    input_variables=["table_name", "column_list", "fk_hints", "quality_findings"],
    template=SCHEMA_SUMMARY_TEMPLATE,
)
