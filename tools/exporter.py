# tools/exporter.py
from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    HRFlowable,
)
from xml.sax.saxutils import escape

CSV_EXPORT_ROWS = 1000


def _safe(x: Any, fallback: str = "—") -> str:
    if x is None:
        return fallback
    if isinstance(x, float):
        return f"{x:.4g}"
    return str(x)


def _analysis(report: Dict[str, Any]) -> Dict[str, Any]:
    a = report.get("analysis")
    return a if isinstance(a, dict) else {}


def _insights_text(report: Dict[str, Any]) -> str:
    ins = _analysis(report).get("insights")
    if isinstance(ins, dict):
        return str(ins.get("text") or "")
    return ""


def report_to_markdown(report: Dict[str, Any]) -> str:
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    a = _analysis(report)
    summary = a.get("summary", {}) if isinstance(a.get("summary"), dict) else {}
    stats = a.get("statistics", {}) if isinstance(a.get("statistics"), dict) else {}
    correlations = a.get("correlations") or []
    trends = a.get("trends") or []
    clusters = a.get("clusters") or []

    lines: List[str] = []
    lines.append("# Data Analysis Report")
    lines.append(f"- Generated: {ts}")
    if report.get("file_name"):
        lines.append(f"- File: {report['file_name']}")
    lines.append("")

    lines.append("## Dataset Overview")
    lines.append(f"- Total records: {_safe(summary.get('total_rows'))}")
    lines.append(f"- Total columns: {_safe(summary.get('total_columns'))}")
    lines.append(f"- Numeric columns: {', '.join(summary.get('numeric_columns') or []) or '—'}")
    lines.append(f"- Categorical columns: {', '.join(summary.get('categorical_columns') or []) or '—'}")
    lines.append("")

    if report.get("executive_summary"):
        lines.append("## Executive Summary")
        lines.append(_safe(report["executive_summary"].get("text")))
        lines.append("")

    lines.append("## Insights")
    lines.append(_insights_text(report) or "No insights available.")
    lines.append("")

    lines.append("## Statistics")
    if stats:
        lines.append("| Column | Mean | Median | Std Dev | Min | Max | Missing |")
        lines.append("|---|---|---|---|---|---|---|")
        for col, s in stats.items():
            lines.append(
                f"| {col} | {_safe(s.get('mean'))} | {_safe(s.get('median'))} | {_safe(s.get('std_dev'))} "
                f"| {_safe(s.get('min'))} | {_safe(s.get('max'))} | {_safe(s.get('missing'))} |"
            )
    else:
        lines.append("- —")
    lines.append("")

    lines.append("## Key Findings")
    lines.append(f"- Found {len(correlations)} significant correlations")
    for c in correlations[:10]:
        lines.append(f"  - {c.get('x')} ↔ {c.get('y')}: {_safe(c.get('correlation'))}")
    lines.append(f"- Identified {len(trends)} trends")
    for t in trends:
        lines.append(f"  - {t.get('column')}: {t.get('trend')}")
    lines.append(f"- Estimated {len(clusters)} clusters (approximate)")
    for c in clusters:
        lines.append(f"  - Cluster {c.get('cluster')}: ~{c.get('size')} records")
    lines.append("")

    errs = report.get("errors", [])
    if isinstance(errs, list) and errs:
        lines.append("## Errors / Warnings")
        for e in errs[:30]:
            lines.append(f"- {_safe(e)}")
        lines.append("")

    return "\n".join(lines)


def data_to_csv(report: Dict[str, Any], *, limit: int = CSV_EXPORT_ROWS) -> str:
    """Header plus the first `limit` rows; values containing a comma are double-quoted."""
    a = _analysis(report)
    columns = a.get("columns") or []
    rows = (a.get("data") or [])[:limit]

    def cell(v: Any) -> str:
        if isinstance(v, str) and "," in v:
            return f'"{v}"'
        return "" if v is None else str(v)

    lines = [",".join(columns)]
    for row in rows:
        lines.append(",".join(cell(row.get(c)) for c in columns))
    return "\n".join(lines)


def report_to_pdf_bytes(report: Dict[str, Any], *, job_id: Optional[str] = None) -> bytes:
    buf = BytesIO()

    doc = SimpleDocTemplate(
        buf,
        pagesize=LETTER,
        leftMargin=0.65 * inch,
        rightMargin=0.65 * inch,
        topMargin=0.60 * inch,
        bottomMargin=0.60 * inch,
        title="Data Analysis Report",
    )

    styles = getSampleStyleSheet()
    H1 = ParagraphStyle("H1", parent=styles["Heading1"], fontName="Helvetica-Bold",
                        fontSize=18, leading=22, textColor=colors.black, spaceAfter=6)
    H2 = ParagraphStyle("H2", parent=styles["Heading2"], fontName="Helvetica-Bold",
                        fontSize=12, leading=16, textColor=colors.black, spaceBefore=10, spaceAfter=6)
    BODY = ParagraphStyle("BODY", parent=styles["BodyText"], fontName="Helvetica",
                          fontSize=10, leading=14, textColor=colors.black)
    MUTED = ParagraphStyle("MUTED", parent=BODY, textColor=colors.HexColor("#555555"))

    grid = TableStyle(
        [
            ("BOX", (0, 0), (-1, -1), 0.9, colors.HexColor("#DDDDDD")),
            ("INNERGRID", (0, 0), (-1, -1), 0.6, colors.HexColor("#DDDDDD")),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F6F6F6")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ]
    )

    def text_block(s: str) -> Paragraph:
        return Paragraph(escape(s).replace("\n", "<br/>"), BODY)

    a = _analysis(report)
    summary = a.get("summary", {}) if isinstance(a.get("summary"), dict) else {}
    stats = a.get("statistics", {}) if isinstance(a.get("statistics"), dict) else {}
    correlations = a.get("correlations") or []
    trends = a.get("trends") or []
    clusters = a.get("clusters") or []

    story: List[Any] = []
    story.append(Paragraph("Data Analysis Report", H1))
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    meta = f"<b>Generated:</b> {ts}"
    if job_id:
        meta += f" &nbsp;&nbsp; <b>Job:</b> {escape(job_id)}"
    story.append(Paragraph(meta, MUTED))
    story.append(HRFlowable(width="100%", thickness=0.8, color=colors.HexColor("#DDDDDD")))
    story.append(Spacer(1, 12))

    # ---- Overview metrics ----
    story.append(Paragraph("Dataset Overview", H2))
    metrics = Table(
        [
            ["Total records", _safe(summary.get("total_rows")), "Total columns", _safe(summary.get("total_columns"))],
            ["Numeric columns", _safe(len(summary.get("numeric_columns") or [])),
             "Categorical columns", _safe(len(summary.get("categorical_columns") or []))],
        ],
        colWidths=["22%", "28%", "22%", "28%"],
    )
    metrics.setStyle(grid)
    story.append(metrics)

    if report.get("executive_summary"):
        story.append(Paragraph("Executive Summary", H2))
        story.append(text_block(str(report["executive_summary"].get("text") or "")))

    story.append(Paragraph("Insights", H2))
    story.append(text_block(_insights_text(report) or "No insights available"))

    # ---- Statistics ----
    if stats:
        story.append(Paragraph("Statistics", H2))
        rows = [["Column", "Mean", "Median", "Std Dev", "Min", "Max", "Missing"]]
        for col, s in stats.items():
            rows.append([col] + [_safe(s.get(k)) for k in ("mean", "median", "std_dev", "min", "max", "missing")])
        t = Table(rows, repeatRows=1)
        t.setStyle(grid)
        story.append(t)

    # ---- Findings ----
    story.append(Paragraph("Key Findings", H2))
    findings = [
        f"Dataset contains {_safe(summary.get('total_rows'))} records across {_safe(summary.get('total_columns'))} variables",
        f"Found {len(correlations)} significant correlations",
        f"Identified {len(trends)} trends in the data",
        f"Estimated {len(clusters)} clusters (approximate)",
    ]
    story.append(Paragraph("<br/>".join(f"• {escape(f)}" for f in findings), BODY))

    if correlations:
        story.append(Paragraph("Correlations", H2))
        rows = [["X", "Y", "r"]] + [[c.get("x"), c.get("y"), _safe(c.get("correlation"))] for c in correlations[:15]]
        t = Table(rows, repeatRows=1)
        t.setStyle(grid)
        story.append(t)

    if trends:
        story.append(Paragraph("Trends", H2))
        story.append(Paragraph("<br/>".join(f"• {escape(str(t.get('column')))}: {t.get('trend')}" for t in trends), BODY))

    if clusters:
        story.append(Paragraph("Clusters (approximate)", H2))
        rows = [["Cluster", "Size", "Centroid"]] + [
            [_safe(c.get("cluster")), _safe(c.get("size")),
             ", ".join(f"{v:.2f}" for v in (c.get("centroid") or []))]
            for c in clusters
        ]
        t = Table(rows, repeatRows=1)
        t.setStyle(grid)
        story.append(t)

    errs = report.get("errors") if isinstance(report.get("errors"), list) else []
    if errs:
        story.append(Paragraph("Errors / Warnings", H2))
        story.append(Paragraph("<br/>".join(f"• {escape(str(e))}" for e in errs[:18]), BODY))

    def on_page(canvas, doc_):
        canvas.saveState()
        canvas.setFont("Helvetica", 9)
        canvas.setFillColor(colors.HexColor("#666666"))
        canvas.drawRightString(LETTER[0] - 0.65 * inch, 0.45 * inch, f"Page {doc_.page}")
        canvas.restoreState()

    doc.build(story, onFirstPage=on_page, onLaterPages=on_page)
    return buf.getvalue()
