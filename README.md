# addons-importer

Reads the product sitemap of the PrestaShop Addons marketplace, scrapes every
product page through a FlareSolverr instance, and creates the matching
categories and draft products in a WooCommerce shop through its REST API.

Requires Python 3.11 or later.

## Installation

```
pip install .
```

## Configuration

The command works in one directory: the current directory, or the one given
with `-d/--directory`. That directory must hold a `Settings.toml` file; the
SQLite database `urls.sqlite` is created there on first run, together with its
`urls` and `configuration` tables.

Every field below is required. The numeric fields must be unsigned 32-bit
integers, the others strings; otherwise loading fails.

```toml
[base]
app_name = "addons-importer"
app_version = "0.1.0"

[processing]
batch_size = 10          # URLs read from the database per batch
max_concurrency = 4      # pages processed at the same time
age_url = 24             # hours before a successfully scraped URL is fetched again

[prestashop_addon]
robots_url = "<address of the marketplace robots.txt>"
sitemap_lang = "fr"
sitemap_frequency_update = 7   # days between sitemap refreshes

[flaresolverr]
flaresolverr_url = "http://localhost:8191/v1"
user_agent = "Mozilla/5.0"

[wordpress_api]
wordpress_url = "https://shop.example.com"
username_api = "api-user"
password_api = "password"

[wordpress_page]
template = "default"
status = "draft"
parent = 0               # WooCommerce category the breadcrumb chain starts under
author = 1
```

The values are stored in the `configuration` table under the same names,
except the `[wordpress_page]` fields, which become `wordpress_template`,
`wordpress_status`, `wordpress_parent` and `wordpress_author`.

## Usage

```
addons-importer
addons-importer --directory /path/to/workdir
```

A run goes through these steps:

1. The database is opened (and created if needed).
2. `Settings.toml` is loaded into the `configuration` table.
3. If the sitemap was last stored less than `sitemap_frequency_update` days
   ago, this step is skipped. Otherwise `robots.txt` is fetched through
   FlareSolverr, the `Sitemap:` line is followed to the sitemap index, the
   first sitemap whose address contains `sitemap_<sitemap_lang>` is fetched,
   and every product URL in it is inserted into (or updated in) the `urls`
   table. Non-product URLs and entries with an invalid `lastmod` date are
   skipped.
4. The stored URLs are processed in batches of `batch_size`, at most
   `max_concurrency` at a time. A URL fetched with HTTP 200 within the last
   `age_url` hours is skipped. Otherwise the page is scraped through
   FlareSolverr; each breadcrumb becomes a WooCommerce category (looked up by
   its marketplace id, created under the previous one if missing), and the
   product is created as a draft, simple, virtual, downloadable product in
   the deepest category, unless a product with the same `ps_product_id`
   meta value already exists. The URL's `date_modified` and `http_code` are
   then recorded.

A failure on one URL is reported on standard error and does not stop the
others. A random pause follows each processed page. The command exits with
status 0 on success and 1 when a step fails, and prints how long processing
took.

## Library use

The modules can also be used on their own:

- `addons_importer.extractors` — `extract_title`, `extract_breadcrumb`,
  `extract_product_id`, `extract_price_ht`, `extract_description`,
  `extract_features`, `extract_image_urls` and the other page extractors.
- `addons_importer.scraped` — `FlareSolverrResponse.from_dict` to decode a
  FlareSolverr answer, and `extract_data` to turn it into a `ScrapedData`.
- `addons_importer.woocommerce` — `Auth`, with `create_product`,
  `find_product_by_custom_field`, `find_category_by_custom_field` and
  `create_category`; failures raise `WordPressError`.
- `addons_importer.pages` — `create_page`, `find_page`, `upload_image` and
  `process_images` for WordPress pages and the media library.
- `addons_importer.database` — `init_database`, `insert_sitemap_into_sql`,
  `is_product_url`.
- `addons_importer.config` — `load_configuration`, `get_configuration_value`
  and its integer variants; failures raise `ConfigurationError`.
- `addons_importer.sitemap` — `sitemap_update` and the functions it is built
  from; failures raise `SitemapError`.
- `addons_importer.process` — `process_urls_dynamically`, `process_url` and
  helpers; failures raise `ProcessingError`.

```python
from addons_importer.extractors import extract_title, extract_breadcrumb

with open("page.html", encoding="utf-8") as page:
    html = page.read()
print(extract_title(html))
for crumb in extract_breadcrumb(html):
    print(crumb["position"], crumb["name"], crumb["id"])
```

## What it does not do

- The `addons-importer` command does not upload images to the media library
  or create WordPress pages. Products are created with the scraped image
  addresses passed as image sources; `upload_image`, `process_images`,
  `create_page` and `find_page` are available only as library functions.
- The `app_name`, `app_version` and `[wordpress_page]` `template`, `status`
  and `author` settings are stored but not used by the import.
- It does not fetch pages itself: a running FlareSolverr instance is needed.
- Failed URLs are not retried within a run; they are picked up again on the
  next run.

## Tests

```
pip install .[test]
pytest
```