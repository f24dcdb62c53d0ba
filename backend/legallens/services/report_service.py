"""
Report Service
PDF export of a contract analysis.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from legallens.core.risk import count_by_level, risk_color
from legallens.schemas.domain import Contract, RiskLevel


MARGIN = 20

INDIGO = (79, 70, 229)
SLATE = (100, 116, 139)
HEADING = (30, 41, 59)
BODY = (60, 60, 60)
QUOTE = (71, 85, 105)
RED = (220, 38, 38)
NOTE_QUESTION = (100, 100, 100)


@dataclass(frozen=True)
class ReportBlock:
    """One paragraph of the report, in drawing order."""
    text: str
    size: int = 10
    style: str = ""
    color: Tuple[int, int, int] = BODY
    family: str = "helvetica"
    space_before: float = 0
    new_page: bool = False


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    value = color.lstrip("#")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def strip_non_ascii(text: str) -> str:
    return re.sub(r'[^\x00-\x7F]', '', text or '')


def report_filename(contract: Contract) -> str:
    safe_name = re.sub(r"\s+", "_", contract.file_name)
    return f"{safe_name}_Analysis.pdf"


def _breakdown(clauses) -> str:
    counts = count_by_level(clauses)
    return "Clauses: " + ", ".join(
        f"{counts[level]} {level.value}" for level in (RiskLevel.HIGH, RiskLevel.MEDIUM, RiskLevel.LOW)
    )


def build_report_blocks(contract: Contract) -> List[ReportBlock]:
    """Report content: metadata, summary, risk, clauses, then full text on a new page."""
    analysis = contract.analysis
    if analysis is None:
        raise ValueError("Contract has no analysis to report")

    analyzed_on = datetime.fromtimestamp(contract.upload_date / 1000, tz=timezone.utc)
    blocks = [
        ReportBlock("LegalLens Analysis Report", 22, "B", INDIGO),
        ReportBlock(f"File Name: {contract.file_name}", 10, color=SLATE, space_before=5),
        ReportBlock(f"Analyzed on: {analyzed_on:%Y-%m-%d}", 10, color=SLATE),

        ReportBlock("Executive Summary", 14, "B", HEADING, space_before=10),
        ReportBlock(analysis.summary, 10, space_before=2),

        ReportBlock("Risk Assessment", 14, "B", HEADING, space_before=8),
        ReportBlock(f"Overall Risk: {analysis.overall_risk.value}", 11, "B", space_before=2),
        ReportBlock(f"Risk Score: {analysis.risk_score if analysis.risk_score is not None else 'N/A'}/100", 11, "B"),
        ReportBlock(_breakdown(analysis.clauses), 10, color=SLATE),

        ReportBlock("Detailed Clause Analysis", 14, "B", HEADING, space_before=8),
    ]

    for index, clause in enumerate(analysis.clauses, start=1):
        blocks.append(ReportBlock(
            f"{index}. {clause.explanation} ({clause.risk_level.value} Risk)",
            11, "B", hex_to_rgb(risk_color(clause.risk_level)), space_before=4 if index == 1 else 6,
        ))
        blocks.append(ReportBlock(f'"{clause.text}"', 9, "I", QUOTE))
        blocks.append(ReportBlock(f"Risk Reason: {clause.reason}", 9, color=RED))

        if clause.conversation_history:
            blocks.append(ReportBlock("Q&A Notes:", 9, "B", INDIGO, space_before=1))
            for qa in clause.conversation_history:
                blocks.append(ReportBlock(f"Q: {qa.question}", 8, color=NOTE_QUESTION))
                blocks.append(ReportBlock(f"A: {qa.answer}", 8))

    if analysis.full_text:
        blocks.append(ReportBlock("Full Document Text (OCR)", 14, "B", HEADING, new_page=True))
        blocks.append(ReportBlock(analysis.full_text, 9, family="courier", space_before=4))

    return blocks


def build_report(contract: Contract) -> bytes:
    """Render the analysis report as PDF bytes."""
    pdf = FPDF()
    pdf.set_margins(MARGIN, MARGIN, MARGIN)
    pdf.set_auto_page_break(auto=True, margin=MARGIN)
    pdf.add_page()

    for block in build_report_blocks(contract):
        if block.new_page:
            pdf.add_page()
        elif block.space_before:
            pdf.ln(block.space_before)

        pdf.set_font(block.family, style=block.style, size=block.size)
        pdf.set_text_color(*block.color)
        pdf.multi_cell(
            0,
            block.size * 0.45 + 1.5,
            strip_non_ascii(block.text),
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        pdf.ln(2)

    return bytes(pdf.output())
