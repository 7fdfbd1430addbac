"""
card_control/signature.py
-------------------------
Signature capture: a pointer-driven stroke recorder plus a rasterizer.

The pad is Idle until a pointer goes down, then Drawing until the pointer
is released or leaves the surface. Leaving ends the stroke exactly like a
release. Each time a stroke ends the whole surface is rendered to a PNG
data URI, which becomes the stored signature.
"""

import base64
import io
from enum import Enum
from typing import Callable, List, Sequence, Tuple

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

Point = Tuple[float, float]
Stroke = List[Point]

WIDTH = 400
HEIGHT = 150
DPI = 100
STROKE_WIDTH = 2  # px
STROKE_COLOR = "#2C3E50"
DATA_URI_PREFIX = "data:image/png;base64,"


def render_png(strokes: Sequence[Sequence[Point]], width: int = WIDTH, height: int = HEIGHT) -> bytes:
    """Draw the strokes on a transparent ``width`` x ``height`` surface and encode it as PNG."""
    fig = Figure(figsize=(width / DPI, height / DPI), dpi=DPI)
    FigureCanvasAgg(fig)
    ax = fig.add_axes((0, 0, 1, 1))
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)  # y grows downwards, as on screen
    ax.set_axis_off()
    for stroke in strokes:
        if len(stroke) < 2:
            continue
        xs, ys = zip(*stroke)
        ax.plot(
            xs, ys,
            color=STROKE_COLOR,
            linewidth=STROKE_WIDTH * 72 / DPI,
            solid_capstyle="round",
            solid_joinstyle="round",
        )
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=DPI, transparent=True, metadata={"Software": None})
    return buf.getvalue()


def to_data_uri(png: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(png).decode("ascii")


def rasterize(strokes: Sequence[Sequence[Point]], width: int = WIDTH, height: int = HEIGHT) -> str:
    return to_data_uri(render_png(strokes, width, height))


def decode_data_uri(uri: str) -> bytes:
    """PNG bytes from a ``data:image/png;base64,...`` string."""
    if not uri.startswith(DATA_URI_PREFIX):
        raise ValueError("Not a PNG data URI")
    return base64.b64decode(uri[len(DATA_URI_PREFIX):])


class PadState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


class SignaturePad:
    """
    Records strokes from pointer events and keeps the latest raster snapshot.

    Coordinates passed to the pointer methods are page coordinates; ``origin``
    is the top-left corner of the surface's bounding box.
    """

    def __init__(
        self,
        width: int = WIDTH,
        height: int = HEIGHT,
        rasterizer: Callable[[Sequence[Sequence[Point]], int, int], str] = rasterize,
    ):
        self.width = width
        self.height = height
        self._rasterize = rasterizer
        self.state = PadState.IDLE
        self.strokes: List[Stroke] = []
        self.signature = ""
        self._last: Point | None = None

    @property
    def is_drawing(self) -> bool:
        return self.state is PadState.DRAWING

    @property
    def last_point(self) -> Point | None:
        return self._last

    def pointer_down(self, x: float, y: float, origin: Point = (0, 0)) -> None:
        point = (x - origin[0], y - origin[1])
        self.state = PadState.DRAWING
        self.strokes.append([point])
        self._last = point

    def pointer_move(self, x: float, y: float, origin: Point = (0, 0)) -> None:
        if not self.is_drawing:
            return
        point = (x - origin[0], y - origin[1])
        self.strokes[-1].append(point)
        self._last = point

    def pointer_up(self) -> None:
        self._end_stroke()

    def pointer_leave(self) -> None:
        self._end_stroke()

    def _end_stroke(self) -> None:
        if not self.is_drawing:
            return
        self.state = PadState.IDLE
        self.signature = self._rasterize(self.strokes, self.width, self.height)

    def clear(self) -> None:
        self.state = PadState.IDLE
        self.strokes = []
        self.signature = ""
        self._last = None

    def replay(self, points: Sequence[Point], ended_by: str = "up") -> None:
        """Feed one recorded stroke through the pointer methods."""
        if not points:
            return
        first, *rest = points
        self.pointer_down(*first)
        for x, y in rest:
            self.pointer_move(x, y)
        if ended_by == "leave":
            self.pointer_leave()
        else:
            self.pointer_up()
