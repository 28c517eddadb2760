"""
Export service - generates PDF and JSON reports for saved analyses
"""
import html
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from config import ensure_reports_dir
from models.canonical import JobKind, NormalizedReport
from services.result_parser import normalize

logger = logging.getLogger(__name__)

BULLET_RE = re.compile(r"^(?:-|🔹)\s+(.*)$")
HEADING_RE = re.compile(r"^(#{1,3})\s+(.*)$")
TAG_RE = re.compile(r"<[^>]+>")
BLOCK_TAG_RE = re.compile(r"</?(?:p|div|br|li|h[1-6]|tr|section|article)[^>]*>", re.IGNORECASE)
SCRIPT_RE = re.compile(r"<(script|style)[^>]*>[\s\S]*?</\1>", re.IGNORECASE)


def _record_date(record: Dict[str, Any]) -> datetime:
    created = record.get("created_at")
    if isinstance(created, datetime):
        return created
    if created:
        return datetime.fromisoformat(str(created).replace("Z", "+00:00"))
    return datetime.now()


def inline_markup(text: str) -> str:
    """Markdown emphasis and code spans -> reportlab paragraph markup"""
    text = html.escape(text, quote=False)
    text = re.sub(r"\*\*(.*?)\*\*", r"<b>\1</b>", text)
    text = re.sub(r"\*(.*?)\*", r"<i>\1</i>", text)
    text = re.sub(r"`([^`]+)`", r"<font face='Courier'>\1</font>", text)
    return text


def html_to_text(document: str) -> List[str]:
    """Reduce an HTML report to plain paragraphs"""
    document = SCRIPT_RE.sub("", document)
    document = BLOCK_TAG_RE.sub("\n", document)
    text = html.unescape(TAG_RE.sub("", document))
    return [line.strip() for line in text.splitlines() if line.strip()]


class ExportService:
    """Handle report exports"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#0f172a'),
            spaceAfter=30,
            alignment=TA_CENTER
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=16,
            textColor=colors.HexColor('#2563eb'),
            spaceAfter=12,
            spaceBefore=12
        ))

        self.styles.add(ParagraphStyle(
            name='ReportBullet',
            parent=self.styles['Normal'],
            leftIndent=14,
            bulletIndent=4,
            spaceAfter=4
        ))

    @staticmethod
    def json_filename(record: Dict[str, Any]) -> str:
        return f"shorebreak-{record.get('type') or 'analysis'}-{_record_date(record).strftime('%Y-%m-%d')}.json"

    @staticmethod
    def export_json(record: Dict[str, Any]) -> str:
        """Raw workflow results, pretty-printed"""
        return json.dumps(record.get("results") or {}, indent=2, default=str)

    def generate_pdf(self, record: Dict[str, Any]) -> Path:
        """
        Render a saved analysis to PDF

        Args:
            record: analyses row

        Returns:
            Path to generated PDF file
        """
        report = normalize(record.get("results"), JobKind(record["type"]))
        if report.score is None and record.get("score") is not None:
            report.score = record["score"]

        pdf_path = ensure_reports_dir() / f"report_{record['id']}.pdf"
        self._create_pdf(pdf_path, record, report)

        logger.info(f"Generated PDF report: {pdf_path}")
        return pdf_path

    def _create_pdf(self, pdf_path: Path, record: Dict[str, Any], report: NormalizedReport):
        """Create PDF document"""
        doc = SimpleDocTemplate(
            str(pdf_path),
            pagesize=A4,
            rightMargin=72,
            leftMargin=72,
            topMargin=72,
            bottomMargin=18
        )

        story = []

        story.append(Paragraph(report.title, self.styles['CustomTitle']))
        story.append(Spacer(1, 0.2 * inch))

        info = [["Date:", _record_date(record).strftime("%b %d, %Y")]]
        for key, value in (record.get("input_data") or {}).items():
            info.append([f"{key.replace('_', ' ').title()}:", str(value)])
        info.append(["Score:", f"{report.score:g}/100" if report.score is not None else "N/A"])
        if report.google_rating is not None:
            info.append(["Google Rating:", f"{report.google_rating:g}"])
        if report.review_count is not None:
            info.append(["Reviews:", str(report.review_count)])

        info_table = Table(info, colWidths=[1.8 * inch, 4.2 * inch])
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#555555')),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        story.append(info_table)
        story.append(Spacer(1, 0.3 * inch))

        for section in report.sections:
            story.extend(self._markdown_flowables(section))
            story.append(Spacer(1, 0.2 * inch))

        if report.html:
            for paragraph in html_to_text(report.html):
                story.append(Paragraph(html.escape(paragraph, quote=False), self.styles['Normal']))
                story.append(Spacer(1, 0.05 * inch))

        if not report.sections and not report.html:
            story.append(Paragraph("No report content was returned for this analysis.", self.styles['Normal']))

        story.append(Spacer(1, 0.4 * inch))
        story.append(Paragraph(
            "<i>This report is for informational purposes only.</i>",
            self.styles['Normal']
        ))

        doc.build(story)

    def _markdown_flowables(self, markdown: str) -> list:
        flowables = []
        for line in markdown.splitlines():
            line = line.strip()
            if not line:
                continue
            if line == "---":
                flowables.append(Spacer(1, 0.15 * inch))
                continue

            heading = HEADING_RE.match(line)
            if heading:
                style = {1: 'Heading1', 2: 'CustomHeading', 3: 'Heading3'}[len(heading.group(1))]
                flowables.append(Paragraph(inline_markup(heading.group(2)), self.styles[style]))
                continue

            bullet = BULLET_RE.match(line)
            if bullet:
                flowables.append(Paragraph(inline_markup(bullet.group(1)), self.styles['ReportBullet'], bulletText="•"))
                continue

            flowables.append(Paragraph(inline_markup(line), self.styles['Normal']))
        return flowables
