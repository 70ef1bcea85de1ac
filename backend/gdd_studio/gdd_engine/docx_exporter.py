# backend/gdd_studio/gdd_engine/docx_exporter.py

"""
DOCX Exporter (Markdown-Aware)

Turns a finished run's final markdown GDD into a DOCX file. Handles the
subset of markdown the pipeline produces in practice: headings, bullet and
numbered lists, paragraphs, simple inline emphasis and the concept art
image reference (written out as a captioned link, the image is not fetched).
"""

import os
import re
from docx import Document


IMAGE_PATTERN = re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)$")
NUMBERED_PATTERN = re.compile(r"^\d+[.)]\s+(.*)$")


# ------------------------------------------------------------
# MARKDOWN → RUN FORMAT HELPERS
# ------------------------------------------------------------
def _add_formatted_runs(paragraph, text: str):
    """
    Split on **bold** / *italic* markers and add one run per piece.
    Unbalanced markers are left as literal text.
    """
    for piece in re.split(r"(\*\*[^*]+\*\*|\*[^*]+\*)", text):
        if not piece:
            continue
        if piece.startswith("**") and piece.endswith("**") and len(piece) > 4:
            paragraph.add_run(piece[2:-2]).bold = True
        elif piece.startswith("*") and piece.endswith("*") and len(piece) > 2:
            paragraph.add_run(piece[1:-1]).italic = True
        else:
            paragraph.add_run(piece)


# ------------------------------------------------------------
# EXPORT FUNCTION
# ------------------------------------------------------------
def export_to_docx(markdown: str, output_path: str) -> str:
    """
    Convert a markdown GDD into a DOCX file at output_path.
    Parent folders are created when missing. Returns output_path.
    """
    folder = os.path.dirname(output_path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    doc = Document()

    for line in markdown.split("\n"):
        stripped = line.strip()

        if stripped == "":
            continue

        # --------------------------
        # HEADERS
        # --------------------------
        heading = re.match(r"^(#{1,4})\s+(.*)$", stripped)
        if heading:
            doc.add_heading(heading.group(2), level=len(heading.group(1)))
            continue

        # --------------------------
        # CONCEPT ART REFERENCE
        # --------------------------
        image = IMAGE_PATTERN.match(stripped)
        if image:
            p = doc.add_paragraph()
            p.add_run(f"{image.group(1) or 'Image'}: ").bold = True
            p.add_run(image.group(2))
            continue

        # --------------------------
        # LISTS
        # --------------------------
        if stripped.startswith(("- ", "* ", "• ")):
            _add_formatted_runs(doc.add_paragraph(style="List Bullet"), stripped[2:].strip())
            continue

        numbered = NUMBERED_PATTERN.match(stripped)
        if numbered:
            _add_formatted_runs(doc.add_paragraph(style="List Number"), numbered.group(1))
            continue

        # --------------------------
        # PARAGRAPHS (default)
        # --------------------------
        _add_formatted_runs(doc.add_paragraph(), stripped)

    doc.save(output_path)
    return output_path
