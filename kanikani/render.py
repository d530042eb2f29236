"""
ASCII-art rendering of subject characters and radical images.

Text glyphs are drawn with Pillow using the first Japanese-capable font found
on the system; when none is available the characters are shown as plain text.
Radical images are SVG documents, rasterized with cairosvg before conversion.
"""

from __future__ import annotations

import io
import logging
import os
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from .errors import DecodeError

logger = logging.getLogger(__name__)

# Darkest last: dense characters stand for ink.
ASCII_RAMP = " .:-=+*#%@"

FONT_ENV_VAR = "KANIKANI_FONT"
FONT_PATHS = [
    # Linux fonts
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/fonts-japanese-gothic.ttf",
    "/usr/share/fonts/truetype/takao-gothic/TakaoPGothic.ttf",
    "/usr/share/fonts/truetype/droid/DroidSansFallbackFull.ttf",
    # macOS fonts
    "/System/Library/Fonts/ヒラギノ角ゴシック W3.ttc",
    "/System/Library/Fonts/Hiragino Sans GB.ttc",
    "/Library/Fonts/Arial Unicode.ttf",
    # Windows fonts
    "C:/Windows/Fonts/msgothic.ttc",
    "C:/Windows/Fonts/YuGothM.ttc",
]


def find_font_path() -> Optional[str]:
    override = os.environ.get(FONT_ENV_VAR)
    if override and os.path.exists(override):
        return override
    for path in FONT_PATHS:
        if os.path.exists(path):
            return path
    return None


def image_to_ascii(image: Image.Image, width: int = 80, max_height: int = 24) -> str:
    """Convert an image to ASCII art, dark pixels mapping to dense characters."""
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    gray = Image.alpha_composite(background, rgba).convert("L")

    src_width, src_height = gray.size
    if src_width == 0 or src_height == 0:
        raise DecodeError(f"Invalid image dimensions: {src_width}x{src_height}")

    # Terminal cells are roughly twice as tall as they are wide.
    height = max(1, round(width * src_height / src_width / 2))
    if height > max_height:
        width = max(1, round(width * max_height / height))
        height = max_height
    small = gray.resize((width, height))

    scale = len(ASCII_RAMP) - 1
    lines: List[str] = []
    for y in range(height):
        row = [ASCII_RAMP[scale - small.getpixel((x, y)) * scale // 255] for x in range(width)]
        lines.append("".join(row).rstrip())
    return "\n".join(lines)


class AsciiRenderer:
    """Turns subject characters and radical images into printable text."""

    def __init__(self, font_path: Optional[str] = None, width: int = 80, max_height: int = 24) -> None:
        self.font_path = font_path or find_font_path()
        self.width = width
        self.max_height = max_height

    def render_text(self, characters: str) -> str:
        if not characters:
            return ""
        if not self.font_path:
            return characters

        try:
            font = ImageFont.truetype(self.font_path, 96)
        except OSError:
            logger.warning("Could not load font %s, showing plain characters", self.font_path)
            return characters

        probe = ImageDraw.Draw(Image.new("L", (1, 1)))
        left, top, right, bottom = probe.textbbox((0, 0), characters, font=font)
        canvas = Image.new("L", (right - left + 8, bottom - top + 8), 255)
        ImageDraw.Draw(canvas).text((4 - left, 4 - top), characters, font=font, fill=0)
        return image_to_ascii(canvas, self.width, self.max_height)

    def render_image(self, data: bytes) -> str:
        """Render raw image bytes (SVG or any raster format Pillow reads)."""
        if data.lstrip()[:5] in (b"<?xml", b"<svg ", b"<svg>") or b"<svg" in data[:512]:
            data = self._rasterize_svg(data)
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e
        return image_to_ascii(image, self.width, self.max_height)

    def _rasterize_svg(self, data: bytes) -> bytes:
        try:
            import cairosvg
        except OSError as e:
            raise DecodeError(f"SVG rendering needs the cairo library: {e}") from e

        try:
            return cairosvg.svg2png(bytestring=data, output_width=256, output_height=256)
        except Exception as e:
            raise DecodeError(f"Failed to parse SVG: {e}") from e
