"""FlareSolverr responses and the product data scraped from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from addons_importer import extractors

ADDONS_BASE_URL = "https://addons.prestashop.com/"


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_unsigned(bits: int) -> Callable[[Any], bool]:
    limit = 2**bits - 1

    def check(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= limit

    return check


_is_u16 = _is_unsigned(16)
_is_u64 = _is_unsigned(64)


def _is_str_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(key, str) and isinstance(item, str) for key, item in value.items()
    )


def _ensure_mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"invalid type: expected {kind} object")
    return data


def _required(data: Mapping[str, Any], key: str, check: Callable[[Any], bool], kind: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not check(value):
        raise ValueError(f"invalid type for `{key}`: expected {kind}")
    return value


def _optional(data: Mapping[str, Any], key: str, check: Callable[[Any], bool], kind: str) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if not check(value):
        raise ValueError(f"invalid type for `{key}`: expected {kind}")
    return value


@dataclass
class Cookie:
    """A cookie set while FlareSolverr loaded the page."""

    name: str | None = None
    value: str | None = None
    domain: str | None = None
    path: str | None = None
    expires: float | None = None
    size: int | None = None
    http_only: bool | None = None
    secure: bool | None = None
    session: bool | None = None
    same_site: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Cookie:
        """Build a cookie from its JSON object; raise ValueError on bad types."""
        data = _ensure_mapping(data, "cookie")
        expires = _optional(data, "expires", _is_number, "number")
        return cls(
            name=_optional(data, "name", _is_str, "string"),
            value=_optional(data, "value", _is_str, "string"),
            domain=_optional(data, "domain", _is_str, "string"),
            path=_optional(data, "path", _is_str, "string"),
            expires=None if expires is None else float(expires),
            size=_optional(data, "size", _is_u64, "unsigned integer"),
            http_only=_optional(data, "httpOnly", _is_bool, "boolean"),
            secure=_optional(data, "secure", _is_bool, "boolean"),
            session=_optional(data, "session", _is_bool, "boolean"),
            same_site=_optional(data, "sameSite", _is_str, "string"),
        )


@dataclass
class Solution:
    """The page FlareSolverr loaded."""

    url: str
    status: int
    headers: dict[str, str]
    response: str
    cookies: list[Cookie]
    user_agent: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Solution:
        """Build a solution from its JSON object; raise ValueError when invalid."""
        data = _ensure_mapping(data, "solution")
        cookies = _required(data, "cookies", lambda v: isinstance(v, list), "array")
        return cls(
            url=_required(data, "url", _is_str, "string"),
            status=_required(data, "status", _is_u16, "16-bit unsigned integer"),
            headers=dict(_required(data, "headers", _is_str_map, "map of strings")),
            response=_required(data, "response", _is_str, "string"),
            cookies=[Cookie.from_dict(cookie) for cookie in cookies],
            user_agent=_required(data, "userAgent", _is_str, "string"),
        )


@dataclass
class FlareSolverrResponse:
    """The JSON body FlareSolverr answers a ``request.get`` command with."""

    solution: Solution
    status: str
    message: str
    start_timestamp: int
    end_timestamp: int
    version: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FlareSolverrResponse:
        """Build a response from decoded JSON; raise ValueError when invalid."""
        data = _ensure_mapping(data, "response")
        if "solution" not in data:
            raise ValueError("missing field `solution`")
        return cls(
            solution=Solution.from_dict(data["solution"]),
            status=_required(data, "status", _is_str, "string"),
            message=_required(data, "message", _is_str, "string"),
            start_timestamp=_required(data, "startTimestamp", _is_u64, "unsigned integer"),
            end_timestamp=_required(data, "endTimestamp", _is_u64, "unsigned integer"),
            version=_required(data, "version", _is_str, "string"),
        )


@dataclass
class ScrapedData:
    """Everything taken from one product page."""

    breadcrumbs: list[dict[str, str]]
    product_id: int
    price_ht: str
    title: str
    developer_name: str
    ps_url: str
    module_version: str
    last_update: str
    multistore_compatibility: str
    publication_date: str
    features: str
    with_override: str
    description: str
    ps_version_required: str
    image_urls: list[str] = field(default_factory=list)


def extract_data(body: FlareSolverrResponse) -> ScrapedData:
    """Run every extractor over the page held in *body*."""
    html = body.solution.response
    return ScrapedData(
        breadcrumbs=extractors.extract_breadcrumb(html),
        product_id=extractors.extract_product_id(html),
        price_ht=extractors.extract_price_ht(html),
        title=extractors.extract_title(html),
        developer_name=extractors.extract_developer_name(html),
        ps_url=body.solution.url,
        module_version=extractors.extract_module_version(html),
        last_update=extractors.extract_last_update(html),
        multistore_compatibility=extractors.extract_multistore_compatibility(html),
        publication_date=extractors.extract_publication_date(html),
        features=extractors.extract_features(html),
        with_override=extractors.extract_override(html),
        description=extractors.extract_description(html),
        ps_version_required=extractors.extract_ps_version_required(html),
        image_urls=extractors.extract_image_urls(html, ADDONS_BASE_URL),
    )