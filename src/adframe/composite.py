"""Screenshot compositing fallback (Pillow).

Used when DOM injection did not succeed: the creative is framed with an orange
border and "AD" strip and pasted onto the plain full-page screenshot, either at
the best detected slot or at a heuristic position derived from the ad size.
"""

from __future__ import annotations

from io import BytesIO
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont

from .errors import NoReliableSlot
from .imaging import lanczos_filter
from .logging import jlog
from .models import DESKTOP, METHOD_DETECTED, METHOD_HEURISTIC, MOBILE, AdSize, Creative, PageDimensions, Placement, SlotCandidate

BORDER_COLOR = (0xFF, 0x6B, 0x35)
PLACEHOLDER_FILL = (0xF8, 0xF0, 0xEB)
BORDER_PX = 1
LABEL_PX = 16
CONTENT_START_PX = 150
DEFAULT_VIEWPORT_HEIGHT = {DESKTOP: 900, MOBILE: 844}

_FONT_PATHS = {
    False: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
    ),
    True: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
    ),
}


class CreativeRenderer(Protocol):
    async def render(self, tag: str, width: int, height: int) -> bytes | None: ...


def _load_font(size: int, *, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for path in _FONT_PATHS[bold]:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default()


def heuristic_position(
    size: AdSize,
    page_width: int,
    page_height: int,
    device: str,
    viewport_height: int | None = None,
) -> tuple[int, int]:
    """Typical position for ``size`` on a page with a ~150px header and a right rail on desktop."""

    vh = viewport_height or DEFAULT_VIEWPORT_HEIGHT.get(device, 900)
    w, h = size.width, size.height
    centered_x = max(0, (page_width - w) // 2)
    right_rail_x = min(int(page_width * 0.65) + 20, page_width - w - 20)

    if size.token in ("728x90", "970x250"):
        x, y = centered_x, CONTENT_START_PX
    elif size.token == "300x250":
        if device == MOBILE:
            x, y = centered_x, min(int(vh * 1.5), page_height - h - 20)
        else:
            x, y = right_rail_x, CONTENT_START_PX + 100
    elif size.token == "300x600":
        if device == MOBILE:
            x, y = centered_x, min(int(vh * 1.2), page_height - h - 20)
        else:
            x, y = right_rail_x, CONTENT_START_PX + 50
    elif size.token == "160x600":
        x, y = 10, CONTENT_START_PX + 50
    else:
        x, y = centered_x, min(int(vh * 0.5), page_height - h - 20)

    x = max(0, min(x, page_width - w))
    y = max(10, min(y, page_height - h - 10))
    return x, y


def _open_rgba(data: bytes) -> Image.Image:
    with Image.open(BytesIO(data)) as im:
        return im.convert("RGBA")


def create_overlay(creative_png: bytes, width: int, height: int) -> Image.Image:
    """Creative stretched to ``width``x``height`` inside a 1px border, with an "AD" strip below."""

    total_w = width + BORDER_PX * 2
    total_h = height + BORDER_PX * 2 + LABEL_PX
    overlay = Image.new("RGBA", (total_w, total_h), (255, 255, 255, 255))

    ad = _open_rgba(creative_png)
    if ad.size != (width, height):
        ad = ad.resize((width, height), resample=lanczos_filter())
    overlay.paste(ad, (BORDER_PX, BORDER_PX), ad)

    draw = ImageDraw.Draw(overlay)
    draw.rectangle([0, 0, total_w - 1, height + BORDER_PX * 2 - 1], outline=BORDER_COLOR, width=BORDER_PX)
    strip_top = height + BORDER_PX * 2
    draw.rectangle([0, strip_top, total_w - 1, total_h - 1], fill=BORDER_COLOR)
    draw.text((4, strip_top + 2), "AD", fill=(255, 255, 255), font=_load_font(10, bold=True))
    return overlay


def _dashed_rect(draw: ImageDraw.ImageDraw, width: int, height: int, *, dash: int = 8, gap: int = 4, stroke: int = 2) -> None:
    step = dash + gap
    for x in range(0, width, step):
        x2 = min(x + dash, width) - 1
        draw.rectangle([x, 0, x2, stroke - 1], fill=BORDER_COLOR)
        draw.rectangle([x, height - stroke, x2, height - 1], fill=BORDER_COLOR)
    for y in range(0, height, step):
        y2 = min(y + dash, height) - 1
        draw.rectangle([0, y, stroke - 1, y2], fill=BORDER_COLOR)
        draw.rectangle([width - stroke, y, width - 1, y2], fill=BORDER_COLOR)


def _centered_text(draw: ImageDraw.ImageDraw, cx: float, cy: float, text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((cx - (right - left) / 2 - left, cy - (bottom - top) / 2 - top), text, fill=fill, font=font)


def create_placeholder(width: int, height: int) -> bytes:
    """Stand-in creative for tags that failed to render."""

    im = Image.new("RGBA", (width, height), PLACEHOLDER_FILL + (255,))
    draw = ImageDraw.Draw(im)
    _dashed_rect(draw, width, height)
    cx, cy = width / 2, height / 2
    _centered_text(draw, cx, cy - 12, "Ad Creative", _load_font(16, bold=True), BORDER_COLOR)
    _centered_text(draw, cx, cy + 12, f"{width} x {height}", _load_font(13), (0x99, 0x99, 0x99))
    _centered_text(draw, cx, cy + 32, "(tag failed to render)", _load_font(11), (0xBB, 0xBB, 0xBB))
    out = BytesIO()
    im.save(out, format="PNG")
    return out.getvalue()


def choose_position(
    size: AdSize,
    page_width: int,
    page_height: int,
    device: str,
    viewport_height: int,
    detected_slot: SlotCandidate | None,
    *,
    allow_heuristic_fallback: bool,
) -> tuple[int, int, str]:
    if detected_slot is not None:
        return round(detected_slot.x), round(detected_slot.y), METHOD_DETECTED
    if not allow_heuristic_fallback:
        raise NoReliableSlot(size.token)
    x, y = heuristic_position(size, page_width, page_height, device, viewport_height)
    return x, y, METHOD_HEURISTIC


async def composite_mockup(
    screenshot: bytes,
    dimensions: PageDimensions,
    device: str,
    size: AdSize,
    creative: Creative,
    detected_slot: SlotCandidate | None,
    *,
    allow_heuristic_fallback: bool,
    renderer: CreativeRenderer | None = None,
    fallback_reason: str | None = None,
) -> tuple[bytes, Placement]:
    """Overlay the creative onto ``screenshot``; raises :class:`NoReliableSlot` instead of guessing."""

    page = _open_rgba(screenshot)
    page_w, page_h = page.size
    # position first so a disabled heuristic fails before any tag render
    x, y, method = choose_position(
        size,
        page_w,
        page_h,
        device,
        dimensions.viewport_height,
        detected_slot,
        allow_heuristic_fallback=allow_heuristic_fallback,
    )

    tag_rendered = False
    if creative.image is not None:
        creative_png = creative.image
    elif creative.is_tag and renderer is not None:
        rendered = await renderer.render(creative.tag or "", size.width, size.height)
        tag_rendered = rendered is not None
        creative_png = rendered if rendered is not None else create_placeholder(size.width, size.height)
    else:
        creative_png = create_placeholder(size.width, size.height)

    overlay = create_overlay(creative_png, size.width, size.height)
    safe_x = max(0, min(x, page_w - overlay.width))
    safe_y = max(0, min(y, page_h - overlay.height))
    page.paste(overlay, (safe_x, safe_y), overlay)

    out = BytesIO()
    page.convert("RGB").save(out, format="PNG", optimize=True)
    jlog("info", event="composite_fallback", method=method, x=safe_x, y=safe_y, tag_rendered=tag_rendered, reason=fallback_reason)
    return out.getvalue(), Placement(
        x=safe_x,
        y=safe_y,
        ad_size=size.token,
        ad_size_name=size.name,
        method=method,
        tag_rendered=tag_rendered,
        fallback_reason=fallback_reason,
    )


__all__ = [
    "CreativeRenderer",
    "choose_position",
    "composite_mockup",
    "create_overlay",
    "create_placeholder",
    "heuristic_position",
]
