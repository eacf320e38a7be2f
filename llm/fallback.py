"""
Deterministic report text used when the LLM is unavailable
(no API key, quota exhausted, repeated failures).
"""
from __future__ import annotations

import json
import math
from typing import List

from schemas.results import AnalysisResult, ColumnSummary
from schemas.table import Table

INITIAL_TITLE = "DATA ANALYSIS REPORT"
DETAILED_TITLE = "COMPREHENSIVE ANALYSIS REPORT"
EXECUTIVE_TITLE = "EXECUTIVE SUMMARY"


def data_quality_score(summary: ColumnSummary) -> int:
    score = 100
    if summary.total_rows < 100:
        score -= 20
    elif summary.total_rows < 1000:
        score -= 10

    ratio = len(summary.numeric_columns) / summary.total_columns if summary.total_columns else 0.0
    if ratio < 0.2 or ratio > 0.8:
        score -= 15

    if summary.total_rows > 10000:
        score += 5
    return max(0, min(100, score))


def complexity_level(summary: ColumnSummary) -> str:
    if summary.total_rows <= 0:
        return "Low Complexity"
    features = summary.total_columns * math.log(summary.total_rows)
    if features > 50000:
        return "High Complexity"
    if features > 10000:
        return "Medium Complexity"
    return "Low Complexity"


def dataset_size_category(rows: int) -> str:
    if rows > 100000:
        return "Enterprise Scale"
    if rows > 10000:
        return "Large Dataset"
    if rows > 1000:
        return "Medium Dataset"
    return "Small Dataset"


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {i}" for i in items)


def _structure(summary: ColumnSummary) -> List[str]:
    n_num, n_cat = len(summary.numeric_columns), len(summary.categorical_columns)
    out = []
    if n_num > n_cat:
        out.append("Numeric-dominant structure suited to statistical modeling")
    elif n_cat > n_num:
        out.append("Category-rich dataset suited to classification analysis")
    else:
        out.append("Balanced data types allow several analysis approaches")
    if summary.total_columns > 20:
        out.append("High-dimensional dataset may benefit from feature selection")
    return out


def _opportunities(summary: ColumnSummary) -> List[str]:
    out = []
    if len(summary.numeric_columns) >= 2:
        out += ["Multi-variate correlation analysis", "Regression modeling"]
    if summary.total_rows > 1000:
        out += ["Clustering", "Statistical significance testing"]
    if summary.categorical_columns:
        out += ["Segmentation analysis", "Category distribution profiling"]
    return out


def _quality(summary: ColumnSummary) -> List[str]:
    out = []
    if summary.total_rows < 100:
        out.append("Small sample size may limit statistical power")
    if summary.total_columns < 3:
        out.append("Limited variables may restrict analysis depth")
    return out or ["Dataset structure supports robust analysis"]


def _recommendations(summary: ColumnSummary) -> List[str]:
    out = []
    if len(summary.numeric_columns) >= 3:
        out.append("Run a correlation matrix over all numeric variables")
    if summary.total_rows > 5000:
        out.append("Consider ML techniques for pattern discovery")
    out.append("Monitor data quality on future uploads")
    out.append("Document findings so the analysis can be reproduced")
    return out


def initial_insights(table: Table, summary: ColumnSummary) -> str:
    memory_mb = len(json.dumps(table.records(), default=str)) / 1024 / 1024
    optimization = "Optimal" if memory_mb < 5 else "Good" if memory_mb < 20 else "Consider sampling"

    return f"""{INITIAL_TITLE}

DATASET OVERVIEW
- Records: {summary.total_rows:,} ({dataset_size_category(summary.total_rows)})
- Variables: {summary.total_columns} ({len(summary.numeric_columns)} numeric, {len(summary.categorical_columns)} categorical)
- Data Quality Score: {data_quality_score(summary)}/100
- Complexity Level: {complexity_level(summary)}

STRUCTURAL ANALYSIS
{_bullets(_structure(summary))}

ANALYTICAL OPPORTUNITIES
{_bullets(_opportunities(summary)) or "- None identified"}

PERFORMANCE
- Estimated memory usage: {memory_mb:.2f} MB
- Optimization level: {optimization}

QUALITY ASSESSMENT
{_bullets(_quality(summary))}

RECOMMENDATIONS
{_bullets(_recommendations(summary))}"""


def detailed_insights(result: AnalysisResult) -> str:
    s = result.summary
    total = max(s.total_rows, 1)
    sections = [DETAILED_TITLE, ""]

    n_patterns = len(result.correlations) + len(result.trends) + len(result.clusters)
    sections.append("OVERVIEW")
    sections.append(f"Analysis of {s.total_rows:,} records found {n_patterns} patterns.")
    sections.append("")

    sections.append("CORRELATIONS")
    if result.correlations:
        for c in result.correlations[:3]:
            direction = "Positive" if c.correlation > 0 else "Negative"
            impact = "High" if abs(c.correlation) > 0.7 else "Medium"
            sections.append(f"- {c.x} <-> {c.y}: {direction} (r={abs(c.correlation):.3f}), impact {impact}")
    else:
        sections.append("No significant correlations detected.")
    sections.append("")

    sections.append("TRENDS")
    if result.trends:
        for t in result.trends:
            sections.append(f"- {t.column}: {t.trend.upper()}")
    else:
        sections.append("No clear trends identified.")
    sections.append("")

    sections.append("SEGMENTS (approximate)")
    if result.clusters:
        for c in result.clusters:
            share = c.size / total * 100.0
            kind = "Dominant group" if share > 40 else "Significant segment" if share > 10 else "Niche segment"
            sections.append(f"- Cluster {c.cluster + 1}: ~{c.size} records ({share:.1f}%), {kind}")
    else:
        sections.append("Clustering not applicable for this dataset.")
    sections.append("")

    sections.append("RISKS")
    sections.append("- Correlation does not imply causation")
    if s.total_rows < 1000:
        sections.append("- Limited sample size may affect generalizability")
    return "\n".join(sections)


def executive_summary(result: AnalysisResult) -> str:
    s = result.summary
    n_corr, n_trend, n_clu = len(result.correlations), len(result.trends), len(result.clusters)
    total = n_corr + n_trend + n_clu
    depth = "Comprehensive" if total > 10 else "Substantial" if total > 5 else "Foundational"
    readiness = "Production Ready" if s.total_rows > 1000 else "Pilot Ready"

    return f"""{EXECUTIVE_TITLE}

OVERVIEW
Analysis of {s.total_rows:,} records identified {total} findings.

KEY INDICATORS
- Dataset Quality Score: {data_quality_score(s)}/100
- Analysis Depth: {depth}
- Readiness: {readiness}

FINDINGS
- Relationships: {n_corr} significant correlations
- Patterns: {n_trend} trends
- Segments: {n_clu} approximate groupings

NEXT STEPS
- Validate the strongest relationships with domain experts
- Track trending variables over time
- Re-run the analysis as new data arrives"""
