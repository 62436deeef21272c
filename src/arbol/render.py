"""ES: Renderizadores del reporte genealógico (PDF y PNG).

EN: Family-tree report renderers (PDF and PNG).

Ambos consumen la secuencia de ``PageDescriptor`` producida por el
ensamblador y generan el documento completo en memoria, de modo que un fallo
se detecta antes de enviar cualquier byte al cliente. Incluye:
- PDF con reportlab (tarjetas, leyenda, tablero de estadísticas, pie firmado).
- PNG con matplotlib (lienzo de altura dinámica).
"""

from __future__ import annotations

import datetime as dt
import hashlib
import hmac
import io
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import FancyBboxPatch
from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas as pdf_canvas

from .assembler import LEGEND_LABELS
from .errors import RenderFailure
from .models import Branch, Gender, PageDescriptor, Person, SectionType, Statistics

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PNG_MEDIA_TYPE = "image/png"

BRANCH_COLORS = {
    Branch.DIRECT: "#2C3E50",
    Branch.PATERNAL: "#3498DB",
    Branch.MATERNAL: "#2ECC71",
    Branch.EXTENDED: "#95A5A6",
}
DASH_COLORS = {
    "BG_MAIN": "#D6EAF8",
    "TITLE": "#2E4053",
    "TEXT_GRAY": "#566573",
    "TEAL": "#1ABC9C",
    "BLUE_LIGHT": "#5DADE2",
    "BLUE_DARK": "#2874A6",
    "BG_LIGHT": "#F4F7F6",
    "TRACK": "#E5E7E9",
}
GENDER_LABELS = {Gender.MALE: "Hombres", Gender.FEMALE: "Mujeres", Gender.UNKNOWN: "Sin dato"}
BRANCH_CHART_LABELS = {
    Branch.DIRECT: "Directa",
    Branch.PATERNAL: "Paterna",
    Branch.MATERNAL: "Materna",
    Branch.EXTENDED: "Politica",
}
DISCLAIMER = (
    "NOTA LEGAL:",
    "1. La información estadística presentada es generada dinámicamente basada en la consulta actual.",
    "2. Los porcentajes son aproximados y redondeados.",
    "3. Los datos provienen de fuentes externas y no han sido alterados.",
)

CARDS_PER_ROW = 3


@dataclass(frozen=True)
class RenderContext:
    """ES: Contexto tipado para un renderizado.

    EN: Typed context for one render call.

    Attributes:
        principal: Persona consultada.
        statistics: Conteos agregados del grupo familiar.
        generated_at_utc: Fecha/hora UTC de emisión.
        signature: Firma HMAC del contenido, si hay clave configurada.
    """

    principal: Person
    statistics: Statistics
    generated_at_utc: dt.datetime
    signature: Optional[str] = None


class ReportRenderer(Protocol):
    media_type: str
    extension: str

    def render(self, pages: Sequence[PageDescriptor], context: RenderContext) -> bytes:
        ...


def content_digest(pages: Sequence[PageDescriptor], statistics: Statistics) -> str:
    """ES: Hash SHA-256 determinístico del contenido del reporte.

    EN: Deterministic SHA-256 of the report content (page structure, listed
    document ids and statistics), independent of drawing details.
    """
    payload = {
        "pages": [
            {
                "section": page.section.value,
                "branch": page.branch.value if page.branch else None,
                "page": page.page_index,
                "items": [person.document_id for person in page.items],
                "empty": page.empty,
            }
            for page in pages
        ],
        "statistics": statistics.to_dict(),
    }
    serialized = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def build_report_signature(dni: str, generated_at_iso: str, digest: str, key: str) -> str:
    """ES: Firma HMAC-SHA256 del reporte.

    EN: HMAC-SHA256 report signature over ``dni|timestamp|digest``.
    """
    payload = f"{dni}|{generated_at_iso}|{digest}".encode("utf-8")
    return hmac.new(key.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _age_text(person: Person) -> str:
    return f"{person.age} años" if person.age is not None else "N/A"


def _gender_icon(person: Person) -> str:
    if person.gender is Gender.MALE:
        return "M"
    if person.gender is Gender.FEMALE:
        return "F"
    return "?"


class PdfReportRenderer:
    """ES: Reporte PDF tamaño carta con reportlab.

    EN: LETTER-size PDF report drawn with the reportlab canvas.
    """

    media_type = PDF_MEDIA_TYPE
    extension = "pdf"

    page_width, page_height = LETTER
    card_width = 160
    card_height = 75
    column_step = 180
    row_step = 85
    cards_top = 80
    footer_margin = 40

    def render(self, pages: Sequence[PageDescriptor], context: RenderContext) -> bytes:
        buffer = io.BytesIO()
        try:
            canvas_obj = pdf_canvas.Canvas(buffer, pagesize=LETTER)
            canvas_obj.setTitle(f"Arbol_{context.principal.document_id}")
            self._draw_pages(canvas_obj, pages, context)
            canvas_obj.save()
        except RenderFailure:
            raise
        except Exception as exc:  # noqa: BLE001 - any drawing error is a render failure
            logger.error("render_pdf_failed error=%s", exc)
            raise RenderFailure("Error generando PDF") from exc
        return buffer.getvalue()

    def _top(self, y: float) -> float:
        """Convierte coordenada desde arriba a coordenada reportlab."""
        return self.page_height - y

    def _draw_pages(self, c: Any, pages: Sequence[PageDescriptor], context: RenderContext) -> None:
        started = False
        for page in pages:
            # La leyenda comparte página con el resumen del titular.
            if page.section is not SectionType.LEGEND:
                if started:
                    self._footer(c, context)
                    c.showPage()
                started = True
            if page.section is SectionType.PRINCIPAL_SUMMARY:
                self._principal_page(c, page, context)
            elif page.section is SectionType.LEGEND:
                self._legend(c)
            elif page.section is SectionType.BRANCH_LISTING:
                self._branch_page(c, page, context)
            elif page.section is SectionType.STATISTICS:
                self._statistics_page(c, page, context.statistics)
        if started:
            self._footer(c, context)
            c.showPage()

    def _header(self, c: Any, title: str) -> None:
        c.setFillColor(colors.HexColor(BRANCH_COLORS[Branch.DIRECT]))
        c.rect(0, self._top(50), self.page_width, 50, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(40, self._top(32), title)
        c.setFont("Helvetica-Bold", 10)
        c.drawRightString(self.page_width - 40, self._top(30), "SISTEMA DE CONSULTA")

    def _footer(self, c: Any, context: RenderContext) -> None:
        c.saveState()
        c.setFont("Helvetica", 7)
        c.setFillColor(colors.HexColor("#334155"))
        generated = context.generated_at_utc.strftime("%Y-%m-%d %H:%M UTC")
        c.drawString(40, 24, f"Generado: {generated}")
        c.drawRightString(self.page_width - 40, 24, f"Página {c.getPageNumber()}")
        if context.signature:
            c.setFont("Courier", 6)
            c.drawString(40, 14, f"Firma HMAC-SHA256: {context.signature}")
        c.restoreState()

    def _principal_page(self, c: Any, page: PageDescriptor, context: RenderContext) -> None:
        person = page.items[0] if page.items else context.principal
        self._header(c, page.title)
        c.setFillColor(colors.HexColor(DASH_COLORS["BG_LIGHT"]))
        c.setStrokeColor(colors.HexColor(BRANCH_COLORS[Branch.DIRECT]))
        c.rect(40, self._top(200), 532, 120, fill=1, stroke=1)
        c.setFillColor(colors.HexColor(BRANCH_COLORS[Branch.DIRECT]))
        c.setFont("Helvetica-Bold", 18)
        c.drawString(60, self._top(115), "PERSONA CONSULTADA")
        c.setFont("Helvetica-Bold", 20)
        c.drawString(60, self._top(145), self._fit(c, person.full_name, "Helvetica-Bold", 20, 490))
        c.setFillColor(colors.HexColor("#444444"))
        c.setFont("Helvetica", 11)
        details = (
            f"DNI: {person.document_label}  |  Sexo: {GENDER_LABELS[person.gender]}  |  "
            f"Nacimiento: {person.display('birth_date')}  |  Edad: {_age_text(person)}"
        )
        c.drawString(60, self._top(175), self._fit(c, details, "Helvetica", 11, 500))

    def _legend(self, c: Any) -> None:
        c.setStrokeColor(colors.HexColor("#EEEEEE"))
        c.rect(40, self._top(280), 532, 60, fill=0, stroke=1)
        c.setFillColor(colors.HexColor("#333333"))
        c.setFont("Helvetica", 10)
        c.drawString(55, self._top(240), "LEYENDA VISUAL:")
        for index, branch in enumerate(Branch):
            x = 55 + index * 130
            c.setFillColor(colors.HexColor(BRANCH_COLORS[branch]))
            c.rect(x, self._top(260), 10, 10, fill=1, stroke=0)
            c.setFillColor(colors.HexColor("#555555"))
            c.setFont("Helvetica", 9)
            c.drawString(x + 15, self._top(258), LEGEND_LABELS[branch])

    @property
    def cards_per_sheet(self) -> int:
        """Tarjetas que caben entre el encabezado y el pie de una hoja."""
        usable = self.page_height - self.cards_top - self.footer_margin - self.card_height
        return (int(usable // self.row_step) + 1) * CARDS_PER_ROW

    def _branch_page(self, c: Any, page: PageDescriptor, context: RenderContext) -> None:
        title = page.title
        if page.part_label:
            title = f"{title} - {page.part_label}"
        self._header(c, title)
        color = BRANCH_COLORS[page.branch] if page.branch else BRANCH_COLORS[Branch.EXTENDED]
        if page.empty:
            c.setFillColor(colors.HexColor(DASH_COLORS["TEXT_GRAY"]))
            c.setFont("Helvetica-Oblique", 12)
            c.drawString(40, self._top(100), page.message or "")
            return
        # Capacidades mayores a una hoja siguen en hojas adicionales.
        per_sheet = self.cards_per_sheet
        for start in range(0, len(page.items), per_sheet):
            if start:
                self._footer(c, context)
                c.showPage()
                self._header(c, title)
            for index, person in enumerate(page.items[start : start + per_sheet]):
                row, column = divmod(index, CARDS_PER_ROW)
                y = self.cards_top + row * self.row_step
                self._person_card(c, 40 + column * self.column_step, y, person, color)

    def _person_card(self, c: Any, x: float, y: float, person: Person, color: str) -> None:
        width, height = self.card_width, self.card_height
        bottom = self._top(y + height)
        c.setFillColor(colors.HexColor("#DDDDDD"))
        c.rect(x + 2, bottom - 2, width, height, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.setStrokeColor(colors.HexColor("#CCCCCC"))
        c.setLineWidth(0.5)
        c.rect(x, bottom, width, height, fill=1, stroke=1)
        c.setFillColor(colors.HexColor(color))
        c.rect(x, bottom, 5, height, fill=1, stroke=0)

        c.setFillColor(colors.HexColor("#333333"))
        c.setFont("Helvetica-Bold", 14)
        c.drawString(x + 10, self._top(y + 22), _gender_icon(person))
        c.setFillColor(colors.HexColor(color))
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x + 35, self._top(y + 20), self._fit(c, person.relationship_label or "TITULAR", "Helvetica-Bold", 8, 115))
        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x + 10, self._top(y + 38), self._fit(c, person.display("given_names"), "Helvetica-Bold", 9, 140))
        c.setFillColor(colors.HexColor("#333333"))
        c.setFont("Helvetica", 8)
        c.drawString(x + 10, self._top(y + 52), self._fit(c, person.surnames or "N/A", "Helvetica", 8, 140))
        c.setFillColor(colors.HexColor("#666666"))
        c.setFont("Helvetica", 7)
        c.drawString(x + 10, self._top(y + 66), f"DNI: {person.display('document_id')}  |  Edad: {person.display('age')}")

    def _statistics_page(self, c: Any, page: PageDescriptor, stats: Statistics) -> None:
        c.setFillColor(colors.HexColor(DASH_COLORS["BG_MAIN"]))
        c.rect(0, 0, self.page_width, self.page_height, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.rect(40, self._top(140), 532, 100, fill=1, stroke=0)
        c.setFillColor(colors.HexColor(DASH_COLORS["TITLE"]))
        c.setFont("Helvetica-Bold", 28)
        c.drawString(60, self._top(88), page.title)
        c.setFillColor(colors.HexColor(DASH_COLORS["TEXT_GRAY"]))
        c.setFont("Helvetica", 10)
        c.drawString(60, self._top(112), "Resumen analítico de la composición familiar basado en los registros procesados.")
        if page.empty:
            c.drawString(60, self._top(128), "No se encontraron familiares para calcular estadísticas.")

        row1 = 160
        c.setFillColor(colors.white)
        c.rect(40, self._top(row1 + 150), 200, 150, fill=1, stroke=0)
        self._donut(c, 90, row1 + 60, 30, stats.percentage(stats.count_by_gender[Gender.MALE]), GENDER_LABELS[Gender.MALE], DASH_COLORS["TEAL"])
        self._donut(c, 190, row1 + 60, 30, stats.percentage(stats.count_by_gender[Gender.FEMALE]), GENDER_LABELS[Gender.FEMALE], DASH_COLORS["BLUE_LIGHT"])

        c.setFillColor(colors.white)
        c.rect(260, self._top(row1 + 150), 150, 150, fill=1, stroke=0)
        c.setFillColor(colors.HexColor(DASH_COLORS["TITLE"]))
        c.setFont("Helvetica-Bold", 12)
        c.drawString(275, self._top(row1 + 30), f"{stats.total} Familiares")
        self._people_icons(c, 275, row1 + 55, stats.total)
        c.setFillColor(colors.HexColor(DASH_COLORS["TEXT_GRAY"]))
        c.setFont("Helvetica", 8)
        c.drawString(275, self._top(row1 + 90), "Total de registros identificados")
        c.drawString(275, self._top(row1 + 100), "en el árbol genealógico.")

        c.setFillColor(colors.white)
        c.rect(430, self._top(row1 + 150), 142, 150, fill=1, stroke=0)
        c.setFillColor(colors.HexColor(DASH_COLORS["TITLE"]))
        c.setFont("Helvetica-Bold", 9)
        c.drawString(440, self._top(row1 + 18), "Rangos de edad")
        for index, (label, count) in enumerate(stats.count_by_age_bracket.items()):
            self._progress_bar(c, 440, row1 + 30 + index * 22, stats.percentage(count), label)

        row2 = 330
        c.setFillColor(colors.white)
        c.rect(40, self._top(row2 + 200), 250, 200, fill=1, stroke=0)
        branch_values = [stats.count_by_branch[branch] for branch in Branch]
        self._bar_series(
            c,
            60,
            row2 + 20,
            210,
            130,
            [BRANCH_CHART_LABELS[branch] for branch in Branch],
            [branch_values],
            [BRANCH_COLORS[Branch.PATERNAL]],
        )
        c.setFillColor(colors.HexColor(DASH_COLORS["TITLE"]))
        c.setFont("Helvetica-Bold", 10)
        c.drawString(60, self._top(row2 + 185), "Distribución por Ramas")

        c.setFillColor(colors.white)
        c.rect(310, self._top(row2 + 200), 262, 200, fill=1, stroke=0)
        labels = list(stats.count_by_age_bracket.keys())
        male = [stats.age_by_gender.get(Gender.MALE, {}).get(label, 0) for label in labels]
        female = [stats.age_by_gender.get(Gender.FEMALE, {}).get(label, 0) for label in labels]
        self._bar_series(c, 330, row2 + 20, 220, 130, labels, [male, female], [DASH_COLORS["TEAL"], DASH_COLORS["BLUE_LIGHT"]])
        c.setFillColor(colors.HexColor(DASH_COLORS["TITLE"]))
        c.setFont("Helvetica-Bold", 10)
        c.drawString(330, self._top(row2 + 185), "Rango de Edades por Género (Masc. / Fem.)")

        c.setFillColor(colors.HexColor("#F2F3F4"))
        c.rect(40, self._top(640), 532, 80, fill=1, stroke=0)
        c.setFillColor(colors.HexColor("#7F8C8D"))
        c.setFont("Helvetica-Oblique", 8)
        for index, line in enumerate(DISCLAIMER):
            c.drawString(50, self._top(578 + index * 12), line)

    def _donut(self, c: Any, cx: float, cy_top: float, radius: float, pct: int, label: str, color: str) -> None:
        cy = self._top(cy_top)
        c.setLineWidth(5)
        c.setStrokeColor(colors.HexColor(DASH_COLORS["TRACK"]))
        c.circle(cx, cy, radius, stroke=1, fill=0)
        if pct > 0:
            c.setStrokeColor(colors.HexColor(color))
            c.arc(cx - radius, cy - radius, cx + radius, cy + radius, startAng=90, extent=-3.6 * pct)
        c.setLineWidth(1)
        c.setFillColor(colors.HexColor("#333333"))
        c.setFont("Helvetica-Bold", 10)
        c.drawCentredString(cx, cy - 4, f"{pct}%")
        c.setFillColor(colors.HexColor("#555555"))
        c.setFont("Helvetica", 9)
        c.drawCentredString(cx, cy - radius - 18, label)

    def _people_icons(self, c: Any, x: float, y_top: float, count: int) -> None:
        c.setFillColor(colors.HexColor(DASH_COLORS["TEAL"]))
        for index in range(min(count, 8)):
            cx = x + index * 15
            c.circle(cx + 5, self._top(y_top), 3, stroke=0, fill=1)
            c.rect(cx + 1, self._top(y_top + 15), 8, 10, stroke=0, fill=1)

    def _progress_bar(self, c: Any, x: float, y_top: float, pct: int, label: str) -> None:
        width, height = 90, 8
        bottom = self._top(y_top + height)
        c.setFillColor(colors.HexColor("#D7DBDD"))
        c.roundRect(x, bottom, width, height, 4, stroke=0, fill=1)
        if pct > 0:
            c.setFillColor(colors.HexColor(DASH_COLORS["TEAL"]))
            c.roundRect(x, bottom, max(width * pct / 100, height), height, 4, stroke=0, fill=1)
        c.setFillColor(colors.HexColor("#333333"))
        c.setFont("Helvetica", 7)
        c.drawString(x + width + 4, bottom + 1, f"{label}: {pct}%")

    def _bar_series(
        self,
        c: Any,
        x: float,
        y_top: float,
        width: float,
        height: float,
        labels: Sequence[str],
        series: Sequence[Sequence[int]],
        palette: Sequence[str],
    ) -> None:
        base = self._top(y_top + height)
        c.setLineWidth(0.5)
        c.setStrokeColor(colors.HexColor("#BDC3C7"))
        for step in range(5):
            line_y = base + height * step / 4
            c.line(x, line_y, x + width, line_y)
        max_value = max([value for values in series for value in values] + [1])
        group_width = width / max(len(labels), 1)
        bar_width = min(15, (group_width - 6) / max(len(series), 1))
        for group_index, label in enumerate(labels):
            start = x + group_index * group_width + 4
            for series_index, values in enumerate(series):
                bar_height = height * values[group_index] / max_value
                c.setFillColor(colors.HexColor(palette[series_index % len(palette)]))
                c.rect(start + series_index * (bar_width + 2), base, bar_width, bar_height, stroke=0, fill=1)
            c.setFillColor(colors.HexColor("#555555"))
            c.setFont("Helvetica", 7)
            c.drawString(start, base - 10, label)

    @staticmethod
    def _fit(c: Any, text: str, font: str, size: float, max_width: float) -> str:
        """Recorta con elipsis hasta que el texto quepa en ``max_width``."""
        if c.stringWidth(text, font, size) <= max_width:
            return text
        trimmed = text
        while trimmed and c.stringWidth(f"{trimmed}...", font, size) > max_width:
            trimmed = trimmed[:-1]
        return f"{trimmed}..."


class PngReportRenderer:
    """ES: Reporte PNG en un solo lienzo de altura dinámica (matplotlib).

    EN: Single tall PNG whose height grows with the number of pages and
    cards, drawn with matplotlib's Agg canvas.
    """

    media_type = PNG_MEDIA_TYPE
    extension = "png"

    width_inches = 8.5
    dpi = 110

    def render(self, pages: Sequence[PageDescriptor], context: RenderContext) -> bytes:
        try:
            figure = self._build_figure(pages, context)
            buffer = io.BytesIO()
            FigureCanvasAgg(figure).print_png(buffer)
        except RenderFailure:
            raise
        except Exception as exc:  # noqa: BLE001 - any drawing error is a render failure
            logger.error("render_png_failed error=%s", exc)
            raise RenderFailure("Error generando imagen") from exc
        return buffer.getvalue()

    @staticmethod
    def _panel_height(page: PageDescriptor) -> float:
        if page.section is SectionType.PRINCIPAL_SUMMARY:
            return 1.6
        if page.section is SectionType.LEGEND:
            return 0.6
        if page.section is SectionType.STATISTICS:
            return 3.4
        if page.empty:
            return 0.9
        rows = math.ceil(len(page.items) / CARDS_PER_ROW)
        return 0.6 + 0.95 * rows

    def _build_figure(self, pages: Sequence[PageDescriptor], context: RenderContext) -> Figure:
        heights = [self._panel_height(page) for page in pages] or [1.0]
        footer = 0.4
        figure = Figure(figsize=(self.width_inches, sum(heights) + footer), dpi=self.dpi)
        figure.patch.set_facecolor("white")
        grid = figure.add_gridspec(len(heights) + 1, 1, height_ratios=heights + [footer], hspace=0.25)
        for index, page in enumerate(pages):
            if page.section is SectionType.STATISTICS:
                self._statistics_panel(figure, grid[index], page, context.statistics)
                continue
            axes = figure.add_subplot(grid[index])
            axes.set_axis_off()
            if page.section is SectionType.PRINCIPAL_SUMMARY:
                self._principal_panel(axes, page, context)
            elif page.section is SectionType.LEGEND:
                self._legend_panel(axes)
            else:
                self._branch_panel(axes, page)
        footer_axes = figure.add_subplot(grid[len(heights)])
        footer_axes.set_axis_off()
        generated = context.generated_at_utc.strftime("%Y-%m-%d %H:%M UTC")
        footer_text = f"Generado: {generated}"
        if context.signature:
            footer_text += f"  |  Firma: {context.signature}"
        footer_axes.text(0, 0.5, footer_text, fontsize=6, color="#334155", family="monospace", va="center")
        return figure

    def _principal_panel(self, axes: Any, page: PageDescriptor, context: RenderContext) -> None:
        person = page.items[0] if page.items else context.principal
        axes.set_xlim(0, 1)
        axes.set_ylim(0, 1)
        axes.add_patch(FancyBboxPatch((0, 0), 1, 1, boxstyle="square,pad=0", color=BRANCH_COLORS[Branch.DIRECT]))
        axes.text(0.03, 0.8, page.title, color="white", fontsize=12, weight="bold", va="center")
        axes.text(0.03, 0.5, person.full_name, color="white", fontsize=15, weight="bold", va="center")
        axes.text(
            0.03,
            0.2,
            f"DNI: {person.document_label}  |  Sexo: {GENDER_LABELS[person.gender]}  |  "
            f"Nacimiento: {person.display('birth_date')}  |  Edad: {_age_text(person)}",
            color="white",
            fontsize=9,
            va="center",
        )

    def _legend_panel(self, axes: Any) -> None:
        axes.set_xlim(0, 4)
        axes.set_ylim(0, 1)
        for index, branch in enumerate(Branch):
            axes.add_patch(FancyBboxPatch((index + 0.05, 0.35), 0.12, 0.3, boxstyle="square,pad=0", color=BRANCH_COLORS[branch]))
            axes.text(index + 0.22, 0.5, LEGEND_LABELS[branch], fontsize=8, va="center", color="#555555")

    def _branch_panel(self, axes: Any, page: PageDescriptor) -> None:
        color = BRANCH_COLORS[page.branch] if page.branch else BRANCH_COLORS[Branch.EXTENDED]
        title = page.title if not page.part_label else f"{page.title} - {page.part_label}"
        rows = max(math.ceil(len(page.items) / CARDS_PER_ROW), 1)
        axes.set_xlim(0, CARDS_PER_ROW)
        axes.set_ylim(rows + 0.5, 0)
        axes.text(0, 0.25, title, fontsize=11, weight="bold", color=color, va="center")
        if page.empty:
            axes.text(0, 0.75, page.message or "", fontsize=9, style="italic", color=DASH_COLORS["TEXT_GRAY"], va="center")
            return
        for index, person in enumerate(page.items):
            row, column = divmod(index, CARDS_PER_ROW)
            left, top = column + 0.04, row + 0.55
            axes.add_patch(
                FancyBboxPatch(
                    (left, top),
                    0.92,
                    0.85,
                    boxstyle="round,pad=0.01",
                    facecolor="white",
                    edgecolor="#CCCCCC",
                    linewidth=0.5,
                )
            )
            axes.add_patch(FancyBboxPatch((left, top), 0.03, 0.85, boxstyle="square,pad=0", color=color))
            axes.text(left + 0.07, top + 0.17, f"{_gender_icon(person)}  {person.relationship_label or 'TITULAR'}", fontsize=6.5, weight="bold", color=color)
            axes.text(left + 0.07, top + 0.40, person.display("given_names")[:28], fontsize=7, weight="bold")
            axes.text(left + 0.07, top + 0.58, (person.surnames or "N/A")[:30], fontsize=6.5, color="#333333")
            axes.text(left + 0.07, top + 0.76, f"DNI: {person.display('document_id')} | Edad: {person.display('age')}", fontsize=5.5, color="#666666")

    def _statistics_panel(self, figure: Figure, cell: Any, page: PageDescriptor, stats: Statistics) -> None:
        inner = cell.subgridspec(1, 3, wspace=0.45)
        gender_axes = figure.add_subplot(inner[0])
        genders = list(Gender)
        gender_counts = [stats.count_by_gender[gender] for gender in genders]
        gender_axes.bar(
            [GENDER_LABELS[gender] for gender in genders],
            gender_counts,
            color=[DASH_COLORS["TEAL"], DASH_COLORS["BLUE_LIGHT"], "#BDC3C7"],
        )
        gender_axes.set_title(f"{stats.total} Familiares por sexo", fontsize=8)
        for position, count in enumerate(gender_counts):
            gender_axes.text(position, count, f"{stats.percentage(count)}%", ha="center", va="bottom", fontsize=6)

        branch_axes = figure.add_subplot(inner[1])
        branch_axes.bar(
            [BRANCH_CHART_LABELS[branch] for branch in Branch],
            [stats.count_by_branch[branch] for branch in Branch],
            color=[BRANCH_COLORS[branch] for branch in Branch],
        )
        branch_axes.set_title("Distribución por Ramas", fontsize=8)

        age_axes = figure.add_subplot(inner[2])
        labels = list(stats.count_by_age_bracket.keys())
        positions = list(range(len(labels)))
        male = [stats.age_by_gender.get(Gender.MALE, {}).get(label, 0) for label in labels]
        female = [stats.age_by_gender.get(Gender.FEMALE, {}).get(label, 0) for label in labels]
        age_axes.bar([p - 0.2 for p in positions], male, width=0.4, color=DASH_COLORS["TEAL"], label="Masc.")
        age_axes.bar([p + 0.2 for p in positions], female, width=0.4, color=DASH_COLORS["BLUE_LIGHT"], label="Fem.")
        age_axes.set_xticks(positions)
        age_axes.set_xticklabels(labels)
        age_axes.set_title("Rango de Edades por Género", fontsize=8)
        age_axes.legend(fontsize=6)

        for axes in (gender_axes, branch_axes, age_axes):
            axes.tick_params(labelsize=6)
            axes.set_facecolor(DASH_COLORS["BG_MAIN"])
        if page.empty:
            gender_axes.annotate("Sin familiares", (0.5, 0.5), xycoords="axes fraction", ha="center", fontsize=8)


RENDERERS: Dict[str, type] = {"pdf": PdfReportRenderer, "png": PngReportRenderer}


def build_renderers() -> Dict[str, ReportRenderer]:
    """Instancias por formato. / Renderer instances keyed by format."""
    return {name: factory() for name, factory in RENDERERS.items()}


def supported_formats() -> List[str]:
    return sorted(RENDERERS)
