import json

import pytest

from addons_importer import extractors


def _ld_json(data) -> str:
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


BREADCRUMB = {
    "@type": "BreadcrumbList",
    "itemListElement": [
        {"position": 1, "item": {"@id": "https://shop.example.com/", "name": "Home"}},
        {"position": 2, "item": {"@id": "https://shop.example.com/12-seo", "name": "SEO"}},
    ],
}

LABELS = [
    "Dernière mise à jour",
    "Compatibilité multiboutique",
    "Contient des surcharges",
    "Version de PrestaShop requise",
    "Date de publication",
]


def test_breadcrumb_entries_are_read():
    html = f"<html><head>{_ld_json(BREADCRUMB)}</head></html>"
    result = extractors.extract_breadcrumb(html)
    assert result == [
        {"position": "1", "id": "https://shop.example.com/", "name": "Home"},
        {"position": "2", "id": "https://shop.example.com/12-seo", "name": "SEO"},
    ]


def test_breadcrumb_skips_other_json_ld_and_invalid_json():
    html = (
        "<html><head>"
        '<script type="application/ld+json">not json</script>'
        + _ld_json({"@type": "Product", "name": "X"})
        + _ld_json(BREADCRUMB)
        + "</head></html>"
    )
    result = extractors.extract_breadcrumb(html)
    assert [crumb["name"] for crumb in result] == ["Home", "SEO"]


def test_breadcrumb_stops_at_first_list():
    other = {
        "@type": "BreadcrumbList",
        "itemListElement": [{"position": 9, "item": {"@id": "x", "name": "Other"}}],
    }
    html = _ld_json(BREADCRUMB) + _ld_json(other)
    assert len(extractors.extract_breadcrumb(html)) == 2


def test_breadcrumb_missing_values_become_empty():
    data = {
        "@type": "BreadcrumbList",
        "itemListElement": [{"position": 1.5}, "ignored", {"item": {"name": 3}}],
    }
    result = extractors.extract_breadcrumb(_ld_json(data))
    assert result == [
        {"position": "", "id": "", "name": ""},
        {"position": "", "id": "", "name": ""},
    ]


def test_breadcrumb_absent():
    assert extractors.extract_breadcrumb("<html><body></body></html>") == []


def test_description_returns_content_without_divs():
    html = (
        '<div class="product-description__title"><h2>Description</h2></div>\n'
        '<div class="product-description__content"><div><p>Great module</p></div></div>'
    )
    assert extractors.extract_description(html) == "<p>Great module</p>"


def test_description_missing():
    html = '<div class="product-description__title"><h2>Description</h2></div>'
    assert extractors.extract_description(html) == "Aucun contenu de description valide trouvé"


def test_description_only_first_matching_title_is_used():
    html = (
        '<div class="product-description__title"><h2>Other</h2></div>'
        '<div class="product-description__content"><p>Wrong</p></div>'
        '<section><div class="product-description__title"><h2>Description</h2></div>'
        '<div class="product-description__content"><p>Right</p></div></section>'
    )
    assert extractors.extract_description(html) == "<p>Right</p>"


def test_developer_name():
    html = '<a id="ps_link_manufacturer" title="Acme Modules" href="#">Acme</a>'
    assert extractors.extract_developer_name(html) == "Acme Modules"


def test_developer_name_without_title_or_link():
    assert extractors.extract_developer_name('<a id="ps_link_manufacturer">Acme</a>') == ""
    assert extractors.extract_developer_name("<p>nothing</p>") == ""


def test_features_uses_second_content_block():
    html = (
        '<div class="product-description__content"><p>First</p></div>'
        '<div class="product-description__content"><div><ul><li>Fast</li></ul></div></div>'
    )
    assert extractors.extract_features(html) == "<ul><li>Fast</li></ul>"


def test_features_missing():
    html = '<div class="product-description__content"><p>Only</p></div>'
    assert extractors.extract_features(html) == ""


def test_image_urls_filtered_by_base():
    base = "https://addons.prestashop.com/"
    html = (
        f'<img src="{base}img/a.jpg"><img src="https://cdn.example.com/b.jpg">'
        f'<img alt="none"><img src="{base}img/c.png">'
    )
    assert extractors.extract_image_urls(html, base) == [f"{base}img/a.jpg", f"{base}img/c.png"]


@pytest.mark.parametrize("label", LABELS)
def test_section_item_value(label):
    html = (
        '<div class="muik-section-item">'
        '<div class="muik-section-item__title puik-body-small">Autre</div>'
        "<div>wrong</div>"
        "</div>"
        '<div class="muik-section-item">'
        f'<div class="muik-section-item__title puik-body-small"><span>{label}</span></div>\n'
        "<div>  <b>value</b> here  </div>"
        "</div>"
    )
    results = {
        "Dernière mise à jour": extractors.extract_last_update(html),
        "Compatibilité multiboutique": extractors.extract_multistore_compatibility(html),
        "Contient des surcharges": extractors.extract_override(html),
        "Version de PrestaShop requise": extractors.extract_ps_version_required(html),
        "Date de publication": extractors.extract_publication_date(html),
    }
    expected = {name: "" for name in LABELS}
    expected[label] = "value here"
    assert results == expected


@pytest.mark.parametrize("label", LABELS)
def test_section_item_without_value(label):
    html = f'<div><div class="muik-section-item__title puik-body-small">{label}</div></div>'
    results = [
        extractors.extract_last_update(html),
        extractors.extract_multistore_compatibility(html),
        extractors.extract_override(html),
        extractors.extract_ps_version_required(html),
        extractors.extract_publication_date(html),
    ]
    assert results == ["", "", "", "", ""]


def test_section_item_without_title():
    html = "<div><div>nothing</div></div>"
    results = [
        extractors.extract_last_update(html),
        extractors.extract_multistore_compatibility(html),
        extractors.extract_override(html),
        extractors.extract_ps_version_required(html),
        extractors.extract_publication_date(html),
    ]
    assert results == ["", "", "", "", ""]


def test_module_version():
    html = '<span class="muik-about-module__title-version puik-body-default">v2.4.1</span>'
    assert extractors.extract_module_version(html) == "v2.4.1"
    assert extractors.extract_module_version("<span>v1</span>") == ""


@pytest.mark.parametrize(
    ("html", "expected"),
    [
        ('{"name":"x","price":49.99,"currency":"EUR"}', "49.99"),
        ('{"price":120}', "120"),
        ('{"price":"free"}', ""),
        ("no price here", ""),
    ],
)
def test_price_ht(html, expected):
    assert extractors.extract_price_ht(html) == expected


def test_product_id_from_script():
    html = '<script>var data = {"a":1,"sku":4242,"b":2};</script>'
    assert extractors.extract_product_id(html) == 4242


def test_product_id_overflow_is_zero():
    html = '<script>var data = {"a":1,"sku":99999999999,"b":2};</script>'
    assert extractors.extract_product_id(html) == 0


def test_product_id_only_in_scripts():
    assert extractors.extract_product_id('<p>{"a":1,"sku":77,"b":2}</p>') == 0


def test_title():
    assert extractors.extract_title("<html><head><title>Module X</title></head></html>") == "Module X"
    assert extractors.extract_title("<html><body></body></html>") == "No title found"