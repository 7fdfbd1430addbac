import pytest

from card_control.signature import (
    DATA_URI_PREFIX,
    HEIGHT,
    WIDTH,
    PadState,
    SignaturePad,
    decode_data_uri,
    rasterize,
)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class RecordingRasterizer:
    def __init__(self):
        self.calls = []

    def __call__(self, strokes, width, height):
        self.calls.append([list(s) for s in strokes])
        return f"data:image/png;base64,{len(self.calls)}"


@pytest.fixture
def raster():
    return RecordingRasterizer()


def test_down_moves_up_produces_signature(raster):
    pad = SignaturePad(rasterizer=raster)

    pad.pointer_down(110, 60, origin=(100, 50))
    assert pad.state is PadState.DRAWING
    pad.pointer_move(130, 70, origin=(100, 50))
    pad.pointer_up()

    assert pad.state is PadState.IDLE
    assert pad.signature
    assert raster.calls == [[[(10, 10), (30, 20)]]]
    assert pad.last_point == (30, 20)


def test_leave_ends_stroke_like_up():
    path = [(10, 10), (60, 40), (120, 80)]

    by_up = SignaturePad()
    by_up.replay(path, ended_by="up")
    by_leave = SignaturePad()
    by_leave.replay(path, ended_by="leave")

    assert by_leave.state is PadState.IDLE
    assert by_leave.signature == by_up.signature != ""


def test_idle_events_are_ignored(raster):
    pad = SignaturePad(rasterizer=raster)

    pad.pointer_move(5, 5)
    pad.pointer_up()
    pad.pointer_leave()

    assert pad.strokes == []
    assert pad.signature == ""
    assert raster.calls == []


def test_each_stroke_end_snapshots_whole_surface(raster):
    pad = SignaturePad(rasterizer=raster)
    pad.replay([(0, 0), (10, 10)])
    pad.replay([(20, 20), (30, 30)], ended_by="leave")

    assert len(raster.calls) == 2
    assert raster.calls[-1] == [[(0, 0), (10, 10)], [(20, 20), (30, 30)]]


@pytest.mark.parametrize("drawing", [False, True])
def test_clear_always_empties_signature(raster, drawing):
    pad = SignaturePad(rasterizer=raster)
    pad.replay([(0, 0), (10, 10)])
    if drawing:
        pad.pointer_down(50, 50)

    pad.clear()

    assert pad.signature == ""
    assert pad.strokes == []
    assert pad.state is PadState.IDLE


def test_rasterize_produces_png_of_surface_size():
    uri = rasterize([[(10, 10), (200, 100)]])

    assert uri.startswith(DATA_URI_PREFIX)
    png = decode_data_uri(uri)
    assert png.startswith(PNG_MAGIC)
    # IHDR: width and height are the first two big-endian ints after the chunk header
    assert int.from_bytes(png[16:20], "big") == WIDTH
    assert int.from_bytes(png[20:24], "big") == HEIGHT


def test_drawn_surface_differs_from_blank():
    assert rasterize([[(10, 10), (200, 100)]]) != rasterize([])


def test_decode_rejects_other_uris():
    with pytest.raises(ValueError):
        decode_data_uri("data:image/jpeg;base64,AAAA")
