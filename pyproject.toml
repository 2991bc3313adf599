[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "addons-importer"
version = "0.1.0"
description = "Scrape PrestaShop addon pages through FlareSolverr and import them as WooCommerce products and categories."
requires-python = ">=3.11"
keywords = ["woocommerce", "wordpress", "prestashop", "scraper", "sitemap", "flaresolverr"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]
dependencies = [
    "requests>=2.28",
    "beautifulsoup4>=4.11",
    "termcolor>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
addons-importer = "addons_importer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["addons_importer"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
ignore_missing_imports = true
