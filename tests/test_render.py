from pathlib import Path
import io
import sys

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from collage.errors import ValidationError
from collage.models import Canvas, CompositionPlan, Placement
from collage.render import (
    compose,
    parse_background,
    render_png,
    resize_and_crop,
    resize_to_height,
)


@pytest.mark.parametrize("color,expected", [
    (None, (0, 0, 0, 0)),
    ("transparent", (0, 0, 0, 0)),
    ("#00000000", (0, 0, 0, 0)),
    ("#ff000080", (255, 0, 0, 128)),
    ("#fff", (255, 255, 255, 255)),
    ("white", (255, 255, 255, 255)),
    ({"r": 10, "g": 20, "b": 30, "alpha": 0.5}, (10, 20, 30, 128)),
])
def test_parse_background(color, expected):
    assert parse_background(color) == expected


@pytest.mark.parametrize("color", ["not-a-color", 42, {"r": 300}, {"r": 1, "alpha": 2}])
def test_parse_background_rejects_garbage(color):
    with pytest.raises(ValidationError):
        parse_background(color)


def test_resize_to_height_keeps_aspect():
    item = resize_to_height(Image.new("RGBA", (100, 50)), 100)
    assert (item.width, item.height) == (200, 100)
    assert item.raster.size == (200, 100)


def test_resize_and_crop_fills_exact_box():
    src = Image.new("RGBA", (300, 100), (0, 0, 255, 255))
    item = resize_and_crop(src, 200, 200)
    assert (item.width, item.height) == (200, 200)
    assert item.raster.size == (200, 200)
    assert item.raster.getpixel((0, 0)) == (0, 0, 255, 255)


def test_resize_and_crop_center_crops_overflow():
    # Left half red, right half green; a square cover crop keeps the middle.
    src = Image.new("RGBA", (40, 10), (255, 0, 0, 255))
    src.paste((0, 255, 0, 255), (20, 0, 40, 10))
    item = resize_and_crop(src, 10, 10)
    assert item.raster.getpixel((0, 5))[:3] == (255, 0, 0)
    assert item.raster.getpixel((9, 5))[:3] == (0, 255, 0)


def test_compose_later_layers_paint_over_earlier():
    red = Image.new("RGBA", (4, 4), (255, 0, 0, 255))
    green = Image.new("RGBA", (4, 4), (0, 255, 0, 255))
    plan = CompositionPlan(
        canvas=Canvas(10, 10, "#000000ff"),
        placements=[Placement(red, 2, 2), Placement(green, 4, 4)],
    )
    out = compose(plan)
    assert out.getpixel((3, 3)) == (255, 0, 0, 255)
    assert out.getpixel((5, 5)) == (0, 255, 0, 255)
    assert out.getpixel((0, 0)) == (0, 0, 0, 255)


def test_compose_clips_layers_outside_the_canvas():
    green = Image.new("RGBA", (6, 6), (0, 255, 0, 255))
    plan = CompositionPlan(
        canvas=Canvas(8, 8),
        placements=[
            Placement(green, -3, -3),
            Placement(green, 6, 6),
            Placement(green, 50, 50),
            Placement(green, -20, 0),
        ],
    )
    out = compose(plan)
    assert out.size == (8, 8)
    assert out.getpixel((0, 0)) == (0, 255, 0, 255)
    assert out.getpixel((2, 2)) == (0, 255, 0, 255)
    assert out.getpixel((3, 3)) == (0, 0, 0, 0)
    assert out.getpixel((7, 7)) == (0, 255, 0, 255)


def test_render_png_produces_decodable_png():
    plan = CompositionPlan(canvas=Canvas(0, 0), placements=[])
    data = render_png(plan)
    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (1, 1)
