"""HTML rendering for the upload dashboard."""

from __future__ import annotations

from html import escape
from typing import Iterable, Optional

from shopassets.core.models import AssetDescriptor

_STYLE = """
body { font-family: Arial, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; }
.upload-form { background: #f4f6f8; padding: 20px; border-radius: 8px; margin-bottom: 30px; }
.images-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(200px, 1fr)); gap: 20px; }
.image-card { border: 1px solid #ddd; border-radius: 8px; padding: 10px; }
.image-card img { width: 100%; height: 150px; object-fit: cover; border-radius: 4px; }
.image-info { margin-top: 10px; font-size: 12px; color: #666; }
pre { background: #f4f6f8; padding: 10px; overflow-x: auto; }
"""


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        f"<meta charset=\"utf-8\">\n<title>{escape(title)}</title>\n"
        f"<style>{_STYLE}</style>\n"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


def _format_size(size_bytes: Optional[int]) -> str:
    if size_bytes is None:
        return "N/A"
    return f"{size_bytes / 1024:.2f} KB"


def _image_card(image: AssetDescriptor) -> str:
    name = image.display_name or "Untitled"
    preview = (
        f'<img src="{escape(image.url)}" alt="{escape(name)}">'
        if image.url
        else '<div class="placeholder">No preview</div>'
    )
    return (
        '<div class="image-card">'
        f"{preview}"
        '<div class="image-info">'
        f"<strong>{escape(name)}</strong><br>"
        f"Size: {_format_size(image.size_bytes)}<br>"
        f"Uploaded: {escape(image.created_at or 'unknown')}<br>"
        f"Status: {escape(image.status.value)}"
        "</div></div>"
    )


def render_dashboard(images: Iterable[AssetDescriptor], *, backend: str) -> str:
    items = list(images)
    cards = "\n".join(_image_card(image) for image in items)
    body = f"""
<h1>Image Upload Dashboard <small>Shopify storage: {escape(backend)}</small></h1>
<div class="upload-form">
  <h2>Upload New Image</h2>
  <form action="/dashboard/upload" method="POST" enctype="multipart/form-data">
    <input type="file" name="image" accept="image/*" required>
    <button type="submit">Upload to Shopify</button>
  </form>
</div>
<h2>Uploaded Images ({len(items)})</h2>
<div class="images-grid">
{cards}
</div>
<p><strong>API Endpoint:</strong> <code>GET /api/images</code> returns all image data.
<a href="/api/images" target="_blank">View API Response</a></p>
"""
    return _page("Image Dashboard - Shopify Storage", body)


def render_error(title: str, message: str, *, detail: Optional[str] = None) -> str:
    body = f"<h1>{escape(title)}</h1>\n<p>{escape(message)}</p>"
    if detail:
        body += f"\n<pre>{escape(detail)}</pre>"
    body += '\n<p><a href="/dashboard">Back to dashboard</a></p>'
    return _page(title, body)


__all__ = ["render_dashboard", "render_error"]
