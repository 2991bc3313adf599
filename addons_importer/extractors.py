"""Extract product details from addons marketplace product pages."""

from __future__ import annotations

import json
import re

from bs4 import BeautifulSoup, NavigableString, Tag

_PARSER = "html.parser"
_U32_MAX = 2**32 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_PRICE_PATTERN = re.compile(r'"price":(\d+(\.\d+)?)?')
_SKU_PATTERN = re.compile(r',"sku":(\d+),')

_SECTION_TITLE = "div.muik-section-item__title.puik-body-small"
_NO_DESCRIPTION = "Aucun contenu de description valide trouvé"


def _parse(html_content: str) -> BeautifulSoup:
    return BeautifulSoup(html_content, _PARSER)


def _direct_text(element: Tag) -> list[str]:
    """Text nodes directly inside *element*, as written in the page."""
    return [str(node) for node in element.contents if isinstance(node, NavigableString)]


def _inner_html_without_divs(element: Tag) -> str:
    return element.decode_contents().replace("<div>", "").replace("</div>", "")


def _next_element_sibling(element: Tag) -> Tag | None:
    return next((node for node in element.next_siblings if isinstance(node, Tag)), None)


def _section_item_value(html_content: str, label: str) -> str:
    """Text of the element that follows the section title containing *label*."""
    document = _parse(html_content)
    title_div = next(
        (
            element
            for element in document.select(_SECTION_TITLE)
            if any(label in text for text in element.strings)
        ),
        None,
    )
    if title_div is None:
        print(f"No div containing '{label}' title found.")
        return ""
    value_div = _next_element_sibling(title_div)
    if value_div is None:
        print("No valid following div found containing the date.")
        return ""
    return "".join(value_div.strings).strip()


def _breadcrumb_position(item: dict) -> str:
    position = item.get("position")
    if isinstance(position, bool) or not isinstance(position, int):
        return ""
    if not _I64_MIN <= position <= _I64_MAX:
        return ""
    return str(position)


def _breadcrumb_text(item: dict, key: str) -> str:
    inner = item.get("item")
    if not isinstance(inner, dict):
        return ""
    value = inner.get(key)
    return value if isinstance(value, str) else ""


def extract_breadcrumb(html_content: str) -> list[dict[str, str]]:
    """Return the entries of the first JSON-LD ``BreadcrumbList`` in the page.

    Each entry maps ``position``, ``id`` and ``name`` to strings, empty when absent.
    """
    document = _parse(html_content)
    breadcrumbs: list[dict[str, str]] = []
    for element in document.select("script[type='application/ld+json']"):
        try:
            data = json.loads("".join(_direct_text(element)))
        except ValueError:
            continue
        if not isinstance(data, dict) or data.get("@type") != "BreadcrumbList":
            continue
        items = data.get("itemListElement")
        if isinstance(items, list):
            breadcrumbs.extend(
                {
                    "position": _breadcrumb_position(item),
                    "id": _breadcrumb_text(item, "@id"),
                    "name": _breadcrumb_text(item, "name"),
                }
                for item in items
                if isinstance(item, dict)
            )
        break
    return breadcrumbs


def extract_description(html_content: str) -> str:
    """Return the HTML of the description section, with bare div tags removed."""
    document = _parse(html_content)
    for element in document.select("div.product-description__title"):
        if not any("Description" in text for text in element.strings):
            continue
        for sibling in element.next_siblings:
            if not isinstance(sibling, Tag):
                continue
            classes = sibling.get("class")
            class_attr = " ".join(classes) if isinstance(classes, list) else (classes or "")
            if "product-description__content" in class_attr:
                return _inner_html_without_divs(sibling)
        break
    return _NO_DESCRIPTION


def extract_developer_name(html_content: str) -> str:
    """Return the ``title`` of the manufacturer link, or an empty string."""
    element = _parse(html_content).select_one("a[id='ps_link_manufacturer']")
    if element is None:
        return ""
    title = element.get("title")
    return title if isinstance(title, str) else ""


def extract_features(html_content: str) -> str:
    """Return the HTML of the second description content block, or an empty string."""
    blocks = _parse(html_content).select("div.product-description__content")
    if len(blocks) < 2:
        return ""
    return _inner_html_without_divs(blocks[1])


def extract_image_urls(html_content: str, base_url: str) -> list[str]:
    """Return the ``src`` of every image whose address contains *base_url*."""
    return [
        src
        for image in _parse(html_content).find_all("img")
        if isinstance(src := image.get("src"), str) and base_url in src
    ]


def extract_last_update(html_content: str) -> str:
    """Return the date of the last update, or an empty string."""
    return _section_item_value(html_content, "Dernière mise à jour")


def extract_module_version(html_content: str) -> str:
    """Return the text of the module version label, or an empty string."""
    element = _parse(html_content).select_one(
        "span.muik-about-module__title-version.puik-body-default"
    )
    return "" if element is None else "".join(element.strings)


def extract_multistore_compatibility(html_content: str) -> str:
    """Return the multistore compatibility, or an empty string."""
    return _section_item_value(html_content, "Compatibilité multiboutique")


def extract_override(html_content: str) -> str:
    """Return whether the module contains overrides, or an empty string."""
    return _section_item_value(html_content, "Contient des surcharges")


def extract_price_ht(html_content: str) -> str:
    """Return the number after the first ``"price":``, or an empty string."""
    match = _PRICE_PATTERN.search(html_content)
    if match is None or match.group(1) is None:
        return ""
    return match.group(1)


def extract_product_id(html_content: str) -> int:
    """Return the SKU found in a script as ``,"sku":<number>,``, or 0."""
    for script in _parse(html_content).find_all("script"):
        for text in _direct_text(script):
            match = _SKU_PATTERN.search(text)
            if match is None:
                continue
            digits = match.group(1)
            if not digits.isascii():
                return 0
            value = int(digits)
            return value if value <= _U32_MAX else 0
    return 0


def extract_ps_version_required(html_content: str) -> str:
    """Return the PrestaShop version required, or an empty string."""
    return _section_item_value(html_content, "Version de PrestaShop requise")


def extract_publication_date(html_content: str) -> str:
    """Return the publication date, or an empty string."""
    return _section_item_value(html_content, "Date de publication")


def extract_title(html_content: str) -> str:
    """Return the inner HTML of the page title, or ``"No title found"``."""
    element = _parse(html_content).find("title")
    return "No title found" if element is None else element.decode_contents()