import io
import re
import logging
from datetime import datetime
from typing import BinaryIO, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

logger = logging.getLogger(__name__)

SECTION_COLORS = {
    1: "#2c3e50", 2: "#2980b9", 3: "#27ae60", 4: "#d35400",
    5: "#8e44ad", 6: "#16a085", 7: "#c0392b", 8: "#7f8c8d",
}
DEFAULT_HEADING_COLOR = "#000000"

HEADING_RE = re.compile(r"^(\d)\.\s\*+(.*?)\*")


class ReportRenderError(RuntimeError):
    """Raised when the PDF cannot be built or written."""


def section_color(index) -> str:
    try:
        return SECTION_COLORS.get(int(index), DEFAULT_HEADING_COLOR)
    except (TypeError, ValueError):
        return DEFAULT_HEADING_COLOR


# PDF text sanitization helper to avoid unsupported glyphs
def sanitize_pdf_text(s):
    if s is None:
        return ""
    t = str(s)
    # Normalize common unicode symbols to ASCII
    t = (t.replace("•", "-")
           .replace("–", "-")
           .replace("—", "-")
           .replace("×", "x")
           .replace("₹", "Rs.")
           .replace("“", '"')
           .replace("”", '"')
           .replace("’", "'")
           .replace("‘", "'")
           .replace("≈", "~"))
    # Keep tab/newline plus printable ASCII
    t = re.sub(r"[^\t\n\r -~]", "", t)
    # Soft-break very long unbroken tokens so they can wrap
    t = re.sub(r"([A-Za-z0-9:/\.\-_]{30})(?=[A-Za-z0-9:/\.\-_])", r"\1 ", t)
    return t.rstrip()


def _markup(s) -> str:
    return escape(sanitize_pdf_text(s))


def get_report_styles():
    styles = getSampleStyleSheet()
    body_style = styles['BodyText']
    body_style.fontName = 'Helvetica'
    body_style.fontSize = 12
    body_style.leading = 16
    body_style.textColor = colors.black
    body_style.wordWrap = 'CJK'
    styles.add(ParagraphStyle(name='SectionHeading', parent=body_style, fontName='Helvetica-Bold',
                              fontSize=16, leading=22, spaceBefore=12, spaceAfter=6))
    styles.add(ParagraphStyle(name='Header', fontSize=8, alignment=TA_RIGHT, textColor=colors.grey))
    styles.add(ParagraphStyle(name='Footer', fontSize=8, alignment=TA_CENTER, textColor=colors.grey))
    return styles


def header(canvas, doc):
    canvas.saveState()
    styles = get_report_styles()
    p = Paragraph(f"Report Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles['Header'])
    w, h = p.wrap(doc.width, doc.topMargin)
    p.drawOn(canvas, doc.leftMargin, doc.height + doc.topMargin - h)
    canvas.restoreState()


def footer(canvas, doc):
    canvas.saveState()
    styles = get_report_styles()
    p = Paragraph(f"Page {doc.page}", styles['Footer'])
    w, h = p.wrap(doc.width, doc.bottomMargin)
    p.drawOn(canvas, doc.leftMargin, h)
    canvas.restoreState()


def _decorate_page(canvas, doc):
    header(canvas, doc)
    footer(canvas, doc)


def build_report_story(text: str, styles) -> list:
    story = []
    for line in (text or "").split("\n"):
        m = HEADING_RE.match(line)
        if m:
            index, title = m.group(1), m.group(2).strip()
            heading_style = ParagraphStyle(
                name=f"SectionHeading{index}",
                parent=styles['SectionHeading'],
                textColor=colors.HexColor(section_color(index)),
            )
            story.append(Spacer(1, 12))
            story.append(Paragraph(f"<u>{index}. {_markup(title)}</u>", heading_style))
            story.append(Spacer(1, 6))
        elif not line.strip():
            story.append(Spacer(1, 8))
        else:
            story.append(Paragraph(_markup(line), styles['BodyText']))
            story.append(Spacer(1, 4))
    return story


def render_report_pdf(text: str, sink: Union[str, BinaryIO]) -> None:
    """
    Render section-tagged report text to a PDF written to ``sink``
    (a file path or a writable binary stream).
    """
    try:
        doc = SimpleDocTemplate(sink, pagesize=letter,
                                rightMargin=inch*0.75, leftMargin=inch*0.75,
                                topMargin=inch, bottomMargin=inch,
                                title="Investment Report")
        styles = get_report_styles()
        story = build_report_story(text, styles)
        if not story:
            story = [Paragraph("No report content.", styles['BodyText'])]
        doc.build(story, onFirstPage=_decorate_page, onLaterPages=_decorate_page)
    except Exception as e:
        logger.error(f"PDF rendering failed: {e}")
        raise ReportRenderError(f"Failed to render report PDF: {e}") from e


def render_report_bytes(text: str) -> bytes:
    buf = io.BytesIO()
    render_report_pdf(text, buf)
    return buf.getvalue()
