import io
import logging
import os
import re
from datetime import date
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from preschool_planner.models.lesson_plan_model import LessonPlan
from preschool_planner.utils import export_utils as labels
from preschool_planner.utils.date_utils import format_export_date

logger = logging.getLogger(__name__)

_BASE_FONT = "Helvetica"
_BOLD_FONT = "Helvetica-Bold"
_HEADER_GREEN = colors.Color(76 / 255, 175 / 255, 80 / 255)


def register_font(font_path: Optional[str]) -> Tuple[str, str]:
    """
    Register a TTF font for lesson content outside Latin-1 (e.g. Vietnamese).
    Falls back to Helvetica when no path is configured.
    """
    if not font_path:
        return _BASE_FONT, _BOLD_FONT
    name = "LessonPlanFont-" + re.sub(r"\W+", "_", os.path.abspath(font_path))
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, font_path))
        logger.info("Registered PDF font %s", font_path)
    return name, name


def _styles(font: str, bold_font: str) -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "PlanTitle", parent=base["Title"], fontName=bold_font, fontSize=16, alignment=TA_CENTER, spaceAfter=8
        ),
        "heading": ParagraphStyle(
            "PlanHeading", parent=base["Heading2"], fontName=bold_font, fontSize=12, spaceBefore=10, spaceAfter=4
        ),
        "body": ParagraphStyle("PlanBody", parent=base["Normal"], fontName=font, fontSize=10, leading=13),
        "item": ParagraphStyle(
            "PlanItem", parent=base["Normal"], fontName=font, fontSize=10, leading=13, leftIndent=6 * mm
        ),
        "cell": ParagraphStyle("PlanCell", parent=base["Normal"], fontName=font, fontSize=9, leading=11),
        "header_cell": ParagraphStyle(
            "PlanHeaderCell", parent=base["Normal"], fontName=bold_font, fontSize=9, leading=11, textColor=colors.white
        ),
        "sign": ParagraphStyle(
            "PlanSign", parent=base["Normal"], fontName=font, fontSize=10, leading=13, alignment=TA_CENTER
        ),
    }


def _p(text: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(text or ""), style)


def _metadata_block(plan: LessonPlan, styles: dict) -> Table:
    left, right = labels.metadata_columns(plan)
    left = labels.classification_lines(plan) + left
    rows = []
    for i in range(max(len(left), len(right))):
        row = []
        for column in (left, right):
            if i < len(column):
                label, value = column[i]
                row.append(_p(f"{label}: {value}", styles["body"]))
            else:
                row.append("")
        rows.append(row)
    table = Table(rows, colWidths=["55%", "45%"])
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP"), ("LEFTPADDING", (0, 0), (-1, -1), 0)]))
    return table


def _labelled_lists(groups: List[Tuple[str, List[str]]], styles: dict) -> list:
    flowables = []
    for label, items in groups:
        flowables.append(_p(f"- {label}:", styles["body"]))
        for item in items:
            flowables.append(_p(f"• {item}", styles["item"]))
    return flowables


def _procedure_table(plan: LessonPlan, styles: dict) -> Table:
    rows = [[_p(h, styles["header_cell"]) for h in labels.PROCEDURE_HEADER]]
    for step, teacher, student in labels.procedure_rows(plan):
        rows.append([_p(step, styles["cell"]), _p(teacher, styles["cell"]), _p(student, styles["cell"])])
    table = Table(rows, colWidths=["20%", "40%", "40%"], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), _HEADER_GREEN),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    return table


def _signature_block(plan: LessonPlan, today: date, styles: dict) -> Table:
    left = [_p(labels.SCHOOL_SIGN_OFF, styles["sign"]), _p(labels.SIGNATURE_HINT, styles["sign"])]
    right = [
        _p(labels.signature_place_and_date(plan, format_export_date(today)), styles["sign"]),
        _p(labels.TEACHER_SIGN_OFF, styles["sign"]),
        _p(labels.SIGNATURE_HINT, styles["sign"]),
        Spacer(1, 15 * mm),
        _p(plan.teacher_name, styles["sign"]),
    ]
    table = Table([[left, right]], colWidths=["50%", "50%"])
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return table


def render_pdf(plan: LessonPlan, today: date, *, font_path: Optional[str] = None) -> bytes:
    """
    Render `plan` as a PDF document.

    The output depends only on the plan, `today` and the font: reportlab runs in
    invariant mode so no creation timestamp or random document id ends up in it.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=plan.title,
        author=plan.teacher_name,
        invariant=1,
    )

    doc.build(build_story(plan, today, font_path=font_path))
    return buffer.getvalue()


def build_story(plan: LessonPlan, today: date, *, font_path: Optional[str] = None) -> list:
    """Flowables of the PDF, top to bottom."""
    font, bold_font = register_font(font_path)
    styles = _styles(font, bold_font)
    return [
        _p(plan.title.upper(), styles["title"]),
        _metadata_block(plan, styles),
        _p(labels.OBJECTIVES_HEADING, styles["heading"]),
        *_labelled_lists(labels.objective_groups(plan), styles),
        _p(labels.PREPARATION_HEADING, styles["heading"]),
        *_labelled_lists(labels.preparation_groups(plan), styles),
        _p(labels.PROCEDURE_HEADING, styles["heading"]),
        _procedure_table(plan, styles),
        Spacer(1, 10 * mm),
        _signature_block(plan, today, styles),
    ]
