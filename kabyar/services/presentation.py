"""
Slide outline parsing and PPTX rendering for the presentation builder.
"""

import base64
import io
import re
from typing import Dict, List, Optional, Sequence

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from ..schemas import SlideData


STYLE_CONFIGS: Dict[str, Dict[str, str]] = {
    "professional": {"bg": "1e3a5f", "text": "ffffff", "accent": "3b82f6"},
    "modern": {"bg": "0f172a", "text": "ffffff", "accent": "6366f1"},
    "minimal": {"bg": "ffffff", "text": "1f2937", "accent": "2563eb"},
    "creative": {"bg": "7c3aed", "text": "ffffff", "accent": "fbbf24"},
}

MAX_BULLETS = 6
FALLBACK_BULLETS = 5

_SLIDE_SPLIT = re.compile(r"---+")
_NUMBERED = re.compile(r"^\d+\.")


def _parse_block(block: str) -> Optional[dict]:
    title = ""
    bullets: List[str] = []
    notes = ""

    for line in block.strip().split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue

        if trimmed.startswith(("# ", "## ", "**Slide")):
            title = re.sub(r"^#+\s*", "", trimmed)
            title = re.sub(r"^\*\*Slide.*?:\s*", "", title)
            title = title.replace("**", "").strip()
        elif trimmed.startswith(("- ", "• ")) or _NUMBERED.match(trimmed):
            bullet = re.sub(r"^[-•]\s*", "", trimmed)
            bullet = re.sub(r"^\d+\.\s*", "", bullet)
            bullet = bullet.replace("**", "").strip()
            lowered = bullet.lower()
            if bullet and "speaker note" not in lowered and "visual" not in lowered:
                bullets.append(bullet)
        elif "note:" in trimmed.lower() or "speaker" in trimmed.lower():
            notes = re.sub(r".*notes?:\s*", "", trimmed, count=1, flags=re.IGNORECASE).strip()

    if not title and not bullets:
        return None
    return {"title": title, "bullets": bullets[:MAX_BULLETS], "notes": notes or None}


def parse_slides(text: str, slide_count: int = 8) -> List[SlideData]:
    """
    Parse a generated ``---``-separated outline into slides.

    Titles come from ``#``/``##``/``**Slide N:`` lines, bullets from ``-``,
    ``•`` or numbered lines (at most six per slide), notes from any line
    mentioning notes or the speaker. When nothing parses, paragraphs become
    untitled slides, capped at ``slide_count``.
    """
    slides: List[SlideData] = []

    for block in _SLIDE_SPLIT.split(text):
        if not block.strip():
            continue
        parsed = _parse_block(block)
        if parsed is None:
            continue
        slides.append(SlideData(
            title=parsed["title"] or f"Slide {len(slides) + 1}",
            bullets=parsed["bullets"],
            notes=parsed["notes"],
        ))

    if not slides:
        chunks = [chunk for chunk in text.split("\n\n") if chunk.strip()]
        for i, chunk in enumerate(chunks[:slide_count]):
            lines = [line.strip() for line in chunk.split("\n") if line.strip()]
            slides.append(SlideData(title=f"Slide {i + 1}", bullets=lines[:FALLBACK_BULLETS]))

    return slides


def pptx_filename(topic: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", topic[:30]) + "_presentation.pptx"


def _fill_background(slide, color: str) -> None:
    fill = slide.background.fill
    fill.solid()
    fill.fore_color.rgb = RGBColor.from_string(color.upper())


def _add_text(slide, text, left, top, width, height, size, color, bold=False, align=None):
    box = slide.shapes.add_textbox(Inches(left), Inches(top), Inches(width), Inches(height))
    frame = box.text_frame
    frame.word_wrap = True
    paragraph = frame.paragraphs[0]
    paragraph.text = text
    paragraph.font.size = Pt(size)
    paragraph.font.bold = bold
    paragraph.font.color.rgb = RGBColor.from_string(color.upper())
    if align is not None:
        paragraph.alignment = align
    return frame


def build_pptx(topic: str, slides: Sequence[SlideData], style: str = "professional") -> Dict[str, str]:
    """
    Render slides into a 16:9 deck and return ``{"data": base64, "filename": ...}``.

    Unknown styles fall back to professional.
    """
    colors = STYLE_CONFIGS.get(style, STYLE_CONFIGS["professional"])

    prs = Presentation()
    prs.slide_width = Inches(10)
    prs.slide_height = Inches(5.625)
    prs.core_properties.author = "Kay AI"
    prs.core_properties.title = topic
    prs.core_properties.subject = f"Presentation about {topic}"
    blank_layout = prs.slide_layouts[6]

    title_slide = prs.slides.add_slide(blank_layout)
    _fill_background(title_slide, colors["bg"])
    _add_text(title_slide, topic, 0.5, 2, 9, 1.5, 44, colors["text"], bold=True, align=PP_ALIGN.CENTER)
    _add_text(title_slide, "Created with Kay AI", 0.5, 4, 9, 0.5, 18, colors["accent"], align=PP_ALIGN.CENTER)

    for slide_data in slides:
        slide = prs.slides.add_slide(blank_layout)
        _fill_background(slide, colors["bg"])
        _add_text(slide, slide_data.title, 0.5, 0.3, 9, 0.8, 32, colors["text"], bold=True)

        accent = slide.shapes.add_shape(
            MSO_SHAPE.RECTANGLE, Inches(0.5), Inches(1.1), Inches(2), Inches(0.05)
        )
        accent.fill.solid()
        accent.fill.fore_color.rgb = RGBColor.from_string(colors["accent"].upper())
        accent.line.fill.background()

        if slide_data.bullets:
            frame = _add_text(
                slide, f"• {slide_data.bullets[0]}", 0.5, 1.4, 9, 3.5, 20, colors["text"]
            )
            for bullet in slide_data.bullets[1:]:
                paragraph = frame.add_paragraph()
                paragraph.text = f"• {bullet}"
                paragraph.font.size = Pt(20)
                paragraph.font.color.rgb = RGBColor.from_string(colors["text"].upper())
                paragraph.space_before = Pt(12)

        if slide_data.notes:
            slide.notes_slide.notes_text_frame.text = slide_data.notes

    end_slide = prs.slides.add_slide(blank_layout)
    _fill_background(end_slide, colors["bg"])
    _add_text(end_slide, "Thank You!", 0.5, 2, 9, 1.5, 48, colors["text"], bold=True, align=PP_ALIGN.CENTER)
    _add_text(end_slide, "Questions?", 0.5, 3.5, 9, 0.8, 24, colors["accent"], align=PP_ALIGN.CENTER)

    buffer = io.BytesIO()
    prs.save(buffer)

    return {
        "data": base64.b64encode(buffer.getvalue()).decode("ascii"),
        "filename": pptx_filename(topic),
    }
