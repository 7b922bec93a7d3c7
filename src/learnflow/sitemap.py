"""sitemap.xml for the public site pages."""

from __future__ import annotations

from datetime import date
from xml.sax.saxutils import escape

# (path, changefreq, priority)
SITEMAP_PAGES: tuple[tuple[str, str, str], ...] = (
    ("/", "weekly", "1.0"),
    ("/privacy-policy", "monthly", "0.8"),
    ("/terms-of-service", "monthly", "0.8"),
    ("/tools/cgpa-calculator", "weekly", "0.9"),
    ("/tools/study-timer", "weekly", "0.9"),
    ("/tools/exam-scheduler", "weekly", "0.9"),
    ("/tools/note-organizer", "weekly", "0.9"),
)

SITEMAP_ERROR = '<?xml version="1.0" encoding="UTF-8"?><error>Error generating sitemap</error>'


def generate_sitemap(domain: str, today: date | None = None) -> str:
    lastmod = (today or date.today()).isoformat()
    base = domain.rstrip("/")
    urls = "\n".join(
        "  <url>\n"
        f"    <loc>{escape(base + path)}</loc>\n"
        f"    <lastmod>{lastmod}</lastmod>\n"
        f"    <changefreq>{freq}</changefreq>\n"
        f"    <priority>{priority}</priority>\n"
        "  </url>"
        for path, freq, priority in SITEMAP_PAGES
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{urls}\n"
        "</urlset>"
    )
