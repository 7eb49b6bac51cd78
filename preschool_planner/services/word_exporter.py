import io
import zipfile
from datetime import date

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from preschool_planner.models.lesson_plan_model import LessonPlan
from preschool_planner.utils import export_utils as labels
from preschool_planner.utils.date_utils import export_timestamp, format_export_date


def _add_bullet(doc, text, bold_prefix=None):
    p = doc.add_paragraph(style="List Bullet")
    if bold_prefix:
        run = p.add_run(bold_prefix)
        run.bold = True
        p.add_run(" ")
    p.add_run(text)
    return p


def _add_labelled_line(doc, label, value):
    p = doc.add_paragraph()
    run = p.add_run(f"{label}: ")
    run.bold = True
    p.add_run(value)
    return p


def _add_procedure_table(doc, plan: LessonPlan):
    rows = labels.procedure_rows(plan)
    table = doc.add_table(rows=1 + len(rows), cols=3)
    table.style = "Table Grid"

    for cell, heading in zip(table.rows[0].cells, labels.PROCEDURE_HEADER):
        run = cell.paragraphs[0].add_run(heading)
        run.bold = True

    for row, values in zip(table.rows[1:], rows):
        for cell, value in zip(row.cells, values):
            cell.text = value
    return table


def _add_signature_block(doc, plan: LessonPlan, today: date):
    # borderless two-column table: school on the left, teacher on the right
    table = doc.add_table(rows=1, cols=2)
    left, right = table.rows[0].cells

    run = left.paragraphs[0].add_run(labels.SCHOOL_SIGN_OFF)
    run.bold = True
    left.add_paragraph(labels.SIGNATURE_HINT).runs[0].italic = True

    right.paragraphs[0].add_run(labels.signature_place_and_date(plan, format_export_date(today))).italic = True
    right.add_paragraph().add_run(labels.TEACHER_SIGN_OFF).bold = True
    right.add_paragraph(labels.SIGNATURE_HINT).runs[0].italic = True
    right.add_paragraph()
    right.add_paragraph()
    right.add_paragraph().add_run(plan.teacher_name).bold = True

    for cell in (left, right):
        for p in cell.paragraphs:
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    return table


def _normalize_zip(data: bytes, today: date) -> bytes:
    """Rewrite the package with entry timestamps pinned to `today`."""
    stamp = (today.year, today.month, today.day, 0, 0, 0)
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for item in src.infolist():
            info = zipfile.ZipInfo(item.filename, date_time=stamp)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = item.external_attr
            dst.writestr(info, src.read(item.filename))
    return out.getvalue()


def build_document(plan: LessonPlan, today: date):
    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = "Times New Roman"
    normal.font.size = Pt(12)

    props = doc.core_properties
    props.title = plan.title
    props.author = plan.teacher_name
    props.last_modified_by = plan.teacher_name
    props.created = export_timestamp(today)
    props.modified = export_timestamp(today)
    props.revision = 1

    title = doc.add_heading(plan.title.upper(), level=1)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for label, value in labels.classification_lines(plan):
        _add_labelled_line(doc, label, value)
    left, right = labels.metadata_columns(plan)
    for label, value in left + right:
        _add_labelled_line(doc, label, value)

    doc.add_heading(labels.OBJECTIVES_HEADING, level=2)
    for label, items in labels.objective_groups(plan):
        for item in items:
            _add_bullet(doc, item, bold_prefix=f"{label}:")

    doc.add_heading(labels.PREPARATION_HEADING, level=2)
    for label, items in labels.preparation_groups(plan):
        _add_bullet(doc, ", ".join(items), bold_prefix=f"{label}:")

    doc.add_heading(labels.PROCEDURE_HEADING, level=2)
    _add_procedure_table(doc, plan)

    doc.add_paragraph()
    _add_signature_block(doc, plan, today)
    return doc


def render_docx(plan: LessonPlan, today: date) -> bytes:
    """Render `plan` as a .docx package. Same plan and date give the same bytes."""
    doc = build_document(plan, today)
    buffer = io.BytesIO()
    doc.save(buffer)
    return _normalize_zip(buffer.getvalue(), today)
