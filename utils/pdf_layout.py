# utils/pdf_layout.py
"""
Declarative page layouts and the single reportlab renderer that draws them.

Positions are millimetres measured from the top-left corner of an A4 page,
which is how the printed forms are measured. Document builders
only describe what goes where; render_pdf turns that into PDF bytes.
"""
import io
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

W, H = A4
PAGE_WIDTH_MM = W / mm
PAGE_HEIGHT_MM = H / mm

MARGIN_LEFT = 20
MARGIN_RIGHT = 190
CENTER = 105
BOTTOM_LIMIT = 270

# "Label : Value" columns
LABEL_X = 30
COLON_X = 80
VALUE_X = 85

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


@dataclass
class TextItem:
    x: float
    y: float
    text: str
    size: float = 10
    bold: bool = False
    align: str = "left"


@dataclass
class LineItem:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5


@dataclass
class ImageItem:
    image: Any  # PIL image, path or file-like
    x: float
    y: float
    width: float
    height: float


Item = Union[TextItem, LineItem, ImageItem]


@dataclass
class Page:
    items: List[Item] = field(default_factory=list)


class DocumentLayout:
    """
    Collects pages of positioned items. Keeps a vertical cursor so builders
    can flow rows down the page; a new page is started when the cursor would
    pass the bottom limit.
    """

    def __init__(self, title: str = "", top: float = 20):
        self.title = title
        self.top = top
        self.pages: List[Page] = [Page()]
        self.y = top

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def new_page(self) -> None:
        self.pages.append(Page())
        self.y = self.top

    def ensure_space(self, height: float) -> bool:
        """Starts a new page if `height` mm do not fit. Returns True when it did."""
        if self.y + height > BOTTOM_LIMIT:
            self.new_page()
            return True
        return False

    def move(self, dy: float) -> None:
        self.y += dy

    # --- items ---

    def text(self, text: Any, x: float = MARGIN_LEFT, y: Optional[float] = None, size: float = 10,
             bold: bool = False, align: str = "left") -> None:
        self.page.items.append(TextItem(x, self.y if y is None else y, str(text), size, bold, align))

    def centered(self, text: Any, size: float = 10, bold: bool = False, y: Optional[float] = None) -> None:
        self.text(text, CENTER, y, size, bold, "center")

    def rule(self, y: Optional[float] = None, width: float = 0.5) -> None:
        at = self.y if y is None else y
        self.page.items.append(LineItem(MARGIN_LEFT, at, MARGIN_RIGHT, at, width))

    def image(self, image: Any, x: float, y: float, width: float, height: float) -> None:
        self.page.items.append(ImageItem(image, x, y, width, height))

    def field(self, label: str, value: Any, size: float = 10, bold: bool = False, step: float = 6) -> None:
        """One 'Label : Value' row at the cursor, then moves down by `step`."""
        self.ensure_space(step)
        self.text(label, LABEL_X, size=size, bold=bold)
        self.text(":", COLON_X, size=size, bold=bold)
        self.text("N/A" if value in (None, "") else value, VALUE_X, size=size, bold=bold)
        self.move(step)

    def columns(self, values: List[Any], xs: List[float], size: float = 10, bold: bool = False,
                step: float = 6) -> None:
        """A table row: one value per x position."""
        self.ensure_space(step)
        for value, x in zip(values, xs):
            self.text("" if value is None else value, x, size=size, bold=bold)
        self.move(step)


def render_pdf(layout: DocumentLayout) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    if layout.title:
        c.setTitle(layout.title)

    for page in layout.pages:
        for item in page.items:
            _draw(c, item)
        c.showPage()

    c.save()
    return buffer.getvalue()


def _draw(c: canvas.Canvas, item: Item) -> None:
    if isinstance(item, TextItem):
        c.setFont(FONT_BOLD if item.bold else FONT, item.size)
        x, y = item.x * mm, H - item.y * mm
        if item.align == "center":
            c.drawCentredString(x, y, item.text)
        elif item.align == "right":
            c.drawRightString(x, y, item.text)
        else:
            c.drawString(x, y, item.text)
    elif isinstance(item, LineItem):
        c.setLineWidth(item.width)
        c.line(item.x1 * mm, H - item.y1 * mm, item.x2 * mm, H - item.y2 * mm)
    elif isinstance(item, ImageItem):
        source = item.image if isinstance(item.image, str) else ImageReader(item.image)
        # reportlab anchors images at their bottom-left corner
        c.drawImage(source, item.x * mm, H - (item.y + item.height) * mm, item.width * mm, item.height * mm)
    else:
        raise TypeError(f"Unknown layout item: {item!r}")
