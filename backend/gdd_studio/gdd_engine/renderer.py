# backend/gdd_studio/gdd_engine/renderer.py
import markdown


def render_html(document: str) -> str:
    """Render a markdown GDD to HTML. Pure function."""
    return markdown.markdown(document, extensions=["tables", "fenced_code"])
