from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from .models import CertificateResult

log = logging.getLogger(__name__)

CANVAS_SIZE = (775, 600)
BACKGROUND = (18, 32, 74)
FOREGROUND = (255, 255, 255)
MUTED = (200, 206, 220)
DEFAULT_WISHES = "愿你在浩瀚宇宙中找到属于自己的星辰大海"


def _load_font(font_path: str | None, size: int):
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError as exc:
            log.warning("Failed to load font %s: %s; using default font", font_path, exc)
    return ImageFont.load_default()


def _draw_centered(draw: ImageDraw.ImageDraw, x: int, y: int, text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((x - (right - left) // 2, y - (bottom - top) // 2), text, font=font, fill=fill)


def _draw_right(draw: ImageDraw.ImageDraw, right_x: int, y: int, text: str, font, fill) -> None:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    draw.text((right_x - (right - left), y), text, font=font, fill=fill)


def render_certificate(
    certificate: CertificateResult,
    path: Path,
    font_path: str | None = None,
) -> Path:
    """Draw the certificate and save it as PDF or PNG depending on the suffix."""
    path = Path(path)
    image = Image.new("RGB", CANVAS_SIZE, BACKGROUND)
    draw = ImageDraw.Draw(image)

    title_font = _load_font(font_path, 36)
    body_font = _load_font(font_path, 24)

    width, height = CANVAS_SIZE
    _draw_centered(draw, width // 2, 90, "CERTIFICATE", title_font, FOREGROUND)
    _draw_centered(draw, width // 2, height // 3, certificate.wishes or DEFAULT_WISHES, body_font, FOREGROUND)
    _draw_right(draw, width - 36, height - 170, certificate.name, title_font, FOREGROUND)
    _draw_right(draw, width - 36, height - 115, certificate.work_no, body_font, FOREGROUND)
    _draw_right(draw, width - 36, height - 70, certificate.full_no, body_font, MUTED)

    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = "PDF" if path.suffix.lower() == ".pdf" else "PNG"
    image.save(path, format=fmt)
    log.info("Certificate %s rendered to %s", certificate.full_no, path)
    return path
