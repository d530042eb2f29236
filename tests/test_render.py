import io

import pytest
from PIL import Image

from kanikani import render
from kanikani.errors import DecodeError
from kanikani.render import ASCII_RAMP, AsciiRenderer, image_to_ascii


def test_black_image_is_dense():
    art = image_to_ascii(Image.new("L", (40, 40), 0), width=10)
    lines = art.split("\n")
    assert len(lines) == 5
    assert all(line == ASCII_RAMP[-1] * 10 for line in lines)


def test_white_image_is_blank():
    art = image_to_ascii(Image.new("RGB", (40, 40), (255, 255, 255)), width=10)
    assert art.strip() == ""


def test_transparent_pixels_count_as_background():
    art = image_to_ascii(Image.new("RGBA", (20, 20), (0, 0, 0, 0)), width=10)
    assert art.strip() == ""


def test_height_is_capped():
    art = image_to_ascii(Image.new("L", (10, 400), 0), width=80, max_height=12)
    assert len(art.split("\n")) == 12


def test_left_half_dark():
    image = Image.new("L", (40, 20), 255)
    image.paste(0, (0, 0, 20, 20))
    first = image_to_ascii(image, width=8).split("\n")[0]
    assert first == ASCII_RAMP[-1] * 4


def test_render_image_png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), (0, 0, 0)).save(buffer, format="PNG")
    art = AsciiRenderer(font_path="unused.ttf", width=16).render_image(buffer.getvalue())
    assert ASCII_RAMP[-1] in art


def test_render_image_rejects_garbage():
    with pytest.raises(DecodeError):
        AsciiRenderer(font_path="unused.ttf").render_image(b"definitely not an image")


def test_render_text_without_font(monkeypatch):
    monkeypatch.setattr(render, "find_font_path", lambda: None)
    assert AsciiRenderer().render_text("犬") == "犬"
    assert AsciiRenderer().render_text("") == ""


def test_render_text_with_unloadable_font(tmp_path):
    broken = tmp_path / "broken.ttf"
    broken.write_bytes(b"not a font")
    assert AsciiRenderer(font_path=str(broken)).render_text("猫") == "猫"


def test_font_override(monkeypatch, tmp_path):
    font = tmp_path / "font.ttc"
    font.write_bytes(b"")
    monkeypatch.setenv(render.FONT_ENV_VAR, str(font))
    assert render.find_font_path() == str(font)


@pytest.fixture
def cairosvg():
    # cairosvg raises OSError on import when the cairo system library is missing
    try:
        import cairosvg
    except (ImportError, OSError) as e:
        pytest.skip(f"cairosvg unavailable: {e}")
    return cairosvg


SQUARE_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" viewBox="0 0 100 100">'
    b'<rect x="10" y="10" width="80" height="80" fill="none" stroke="#000" stroke-width="20"/>'
    b"</svg>"
)


def test_render_svg_radical(cairosvg):
    art = AsciiRenderer(font_path="unused.ttf", width=20).render_image(SQUARE_SVG)
    lines = art.split("\n")
    assert len(lines) == 10
    assert ASCII_RAMP[-1] * 3 in lines[0]
    assert ASCII_RAMP[-1] * 3 in lines[-1]


def test_render_svg_with_xml_declaration(cairosvg):
    data = b'<?xml version="1.0" encoding="UTF-8"?>\n' + SQUARE_SVG
    assert ASCII_RAMP[-1] in AsciiRenderer(font_path="unused.ttf", width=20).render_image(data)


def test_render_broken_svg(cairosvg):
    with pytest.raises(DecodeError):
        AsciiRenderer(font_path="unused.ttf").render_image(b"<svg><broken")
