"""
Find listing photos on a parsed page: filter out site chrome (logos, icons, avatars),
resolve relative sources and drop duplicates.
"""

import logging
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .models import ImageCandidate

logger = logging.getLogger("pg_scraper")

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
NOISE_TOKENS = ("logo", "icon", "banner", "avatar", "profile")
# Gallery containers seen on the PG detail pages; scanned after the broad <img> pass
GALLERY_SELECTOR = ".pg-images img, .property-images img, .gallery img, table img"


def is_valid_image_url(src: str | None) -> bool:
    """Substring test on the raw source: needs an image extension, must not look like site chrome."""
    if not src:
        return False
    lower = src.lower()
    if not any(ext in lower for ext in IMAGE_EXTENSIONS):
        return False
    return not any(token in lower for token in NOISE_TOKENS)


def resolve_image_url(src: str, base_url: str) -> str:
    if src.startswith("http"):
        return src
    if src.startswith("//"):
        scheme = urlsplit(base_url).scheme or "https"
        return f"{scheme}:{src}"
    return base_url.rstrip("/") + "/" + src.lstrip("/")


def _attr(el, name: str) -> str:
    value = el.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = " ".join(value)
    return str(value).strip()


def locate_images(document: BeautifulSoup, base_url: str, diagnostics: list[str] | None = None) -> list[ImageCandidate]:
    """
    Return the page's accepted images in traversal order.
    Two passes share one seen-set: every <img>, then the gallery containers, so the
    second pass can only add images the first one missed. Only the first accepted
    image is primary. Bad elements are skipped (and noted in diagnostics), never raised.
    """
    notes = diagnostics if diagnostics is not None else []
    images: list[ImageCandidate] = []
    seen: set[str] = set()
    rejected: set[int] = set()  # id() of elements already reported

    passes = (
        ("img", document.find_all("img")),
        ("gallery", document.select(GALLERY_SELECTOR)),
    )
    for pass_name, elements in passes:
        for position, el in enumerate(elements):
            src = _attr(el, "src")
            reason = ""
            if not src:
                reason = "missing src"
            elif not is_valid_image_url(src):
                reason = f"filtered {src}"
            if reason:
                if id(el) not in rejected:
                    rejected.add(id(el))
                    notes.append(f"{pass_name}[{position}]: {reason}")
                    logger.debug("Image skipped (%s[%d]): %s", pass_name, position, reason)
                continue
            url = resolve_image_url(src, base_url)
            if url in seen:
                continue
            seen.add(url)
            images.append(ImageCandidate(
                absolute_url=url,
                alt_text=_attr(el, "alt"),
                position_index=len(images),
                is_primary=not images,
            ))

    logger.debug("Located %d images (base %s)", len(images), base_url)
    return images
