import json
from typing import Any, Dict, List

from schemas.results import AnalysisResult, ColumnSummary

ANALYST_SYSTEM = """You are a senior data analyst writing for business readers.
Use ONLY the numbers given to you. Do not invent columns, values or trends.
If the sample is small or evidence is weak, say so.
"""


def _columns(cols: List[str]) -> str:
    return ", ".join(cols) or "None"


def initial_insights_prompt(summary: ColumnSummary, sample_rows: List[Dict[str, Any]]) -> str:
    return f"""Analyze this dataset and provide professional insights:

Dataset Summary:
- Total rows: {summary.total_rows}
- Total columns: {summary.total_columns}
- Numeric columns: {_columns(summary.numeric_columns)}
- Categorical columns: {_columns(summary.categorical_columns)}

Sample data (first {len(sample_rows)} rows):
{json.dumps(sample_rows, indent=2, default=str)}

Provide a professional analysis including:
1. Dataset overview and apparent content type
2. Data structure observations and quality assessment
3. Analytical opportunities and recommended approaches
4. Potential limitations or considerations

Format as a structured, professional report."""


def correlation_strength(r: float) -> str:
    return "Strong" if abs(r) > 0.7 else "Moderate"


def detailed_insights_prompt(result: AnalysisResult) -> str:
    s = result.summary
    corr_lines = "\n".join(
        f"- {c.x} <-> {c.y}: {c.correlation:.3f} ({correlation_strength(c.correlation)})"
        for c in result.correlations[:5]
    ) or "None found"
    trend_lines = "\n".join(f"- {t.column}: {t.trend} pattern" for t in result.trends) or "None detected"

    return f"""Provide comprehensive analysis insights for this dataset:

Dataset Overview:
- {s.total_rows} rows, {s.total_columns} columns
- Numeric columns: {_columns(s.numeric_columns)}
- Categorical columns: {_columns(s.categorical_columns)}

Analysis Results:
- Correlations found: {len(result.correlations)}
- Trends identified: {len(result.trends)}
- Clusters (approximate): {len(result.clusters)}

Key Correlations:
{corr_lines}

Trends Detected:
{trend_lines}

Provide a comprehensive professional analysis including:
1. Interpretation of correlation findings and their business implications
2. Analysis of trends and their predictive value
3. Segmentation opportunities (cluster figures are rough estimates)
4. Actionable recommendations with priority levels
5. Risk assessment and limitations
6. Next steps for deeper analysis

Format as a detailed professional report with clear sections."""


def executive_summary_prompt(result: AnalysisResult) -> str:
    s = result.summary
    return f"""Create a professional executive summary for this data analysis:

Dataset: {s.total_rows:,} records with {s.total_columns} variables

Analysis Results:
- Correlations: {len(result.correlations)} significant relationships
- Trends: {len(result.trends)} patterns identified
- Clusters: {len(result.clusters)} approximate groupings

Create a concise executive summary including:
1. Executive overview with key metrics
2. Critical findings and business impact
3. Strategic recommendations
4. Risk factors and mitigation strategies
5. Next steps

Format as a professional executive briefing document."""
