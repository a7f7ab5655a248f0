#!/usr/bin/env python3
"""
Sanity content access: a read-only client for the portfolio's CMS plus the
small formatting helpers the page templates use on what comes back.

Every page builder goes through fetch_from_sanity(), which never raises:
a failed or empty query gives back the caller's fallback instead.

USAGE:
    from sanity import fetch_from_sanity, format_date

    pubs = fetch_from_sanity('*[_type == "publication"]', fallback=[])
    format_date("2024-03-05")   # "5 March 2024"

CONFIGURATION:
    site.yml (optional, repository root):

        sanity:
          project_id: ybrfxq5h
          dataset: production
          api_version: "2024-01-01"
          use_cdn: true
"""

import http.client
import json
import math
import sys
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path

import markdown
import yaml


# ============================================================================
# CONFIGURATION
# ============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_FILE = BASE_DIR / "site.yml"

PROJECT_ID = "ybrfxq5h"
DATASET = "production"
API_VERSION = "2024-01-01"
USE_CDN = True
TIMEOUT = 10

# Longer GET URLs are rejected by the API; such queries are POSTed instead
MAX_GET_URL_LENGTH = 11264

DEFAULT_TRUNCATE_LENGTH = 150

# Markdown converter for rich-text fields
md_converter = markdown.Markdown(extensions=["fenced_code", "tables", "attr_list"])

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

BOOLEAN_WORDS = {"true": True, "yes": True, "on": True, "false": False, "no": False, "off": False}


@dataclass(frozen=True)
class SanityConfig:
    """Connection settings for one Sanity project and dataset."""

    project_id: str = PROJECT_ID
    dataset: str = DATASET
    api_version: str = API_VERSION
    use_cdn: bool = USE_CDN
    timeout: float = TIMEOUT

    @property
    def host(self) -> str:
        api = "apicdn" if self.use_cdn else "api"
        return f"{self.project_id}.{api}.sanity.io"


def warn(message: str):
    """Print a build warning on stderr, keeping stdout clean for output."""
    print(f"  ⚠ Warning: {message}", file=sys.stderr)


def _coerce_setting(key: str, value):
    """Check one site.yml value against its SanityConfig field. Raises ValueError."""
    if key == "use_cdn":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in BOOLEAN_WORDS:
            return BOOLEAN_WORDS[value.strip().lower()]
        raise ValueError(f"expected true or false, got {value!r}")

    if key == "timeout":
        if (isinstance(value, (int, float)) and not isinstance(value, bool)
                and math.isfinite(value) and value > 0):
            return value
        raise ValueError(f"expected a positive number of seconds, got {value!r}")

    # YAML reads an unquoted 2024-01-01 as a date
    if key == "api_version" and isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValueError(f"expected a non-empty string, got {value!r}")


def load_config(path: Path = CONFIG_FILE) -> SanityConfig:
    """Read the `sanity` block of site.yml on top of the defaults."""
    config = SanityConfig()
    if not path.exists():
        return config

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
        warn(f"Could not load {path.name}: {e}")
        return config

    overrides = data.get("sanity") if isinstance(data, dict) else None
    if not isinstance(overrides, dict):
        return config

    settings = {}
    for key, value in overrides.items():
        if key not in SanityConfig.__dataclass_fields__:
            warn(f"Ignoring unknown sanity setting '{key}'")
            continue
        try:
            settings[key] = _coerce_setting(key, value)
        except ValueError as e:
            warn(f"Ignoring sanity setting '{key}': {e}")
    return replace(config, **settings)


# ============================================================================
# CLIENT
# ============================================================================

class SanityQueryError(RuntimeError):
    """The only error SanityClient raises: the query produced no usable answer."""


class SanityClient:
    """Read-only client for the Sanity HTTP query API."""

    def __init__(self, config: SanityConfig | None = None):
        self.config = config or SanityConfig()

    def endpoint(self, use_cdn: bool | None = None) -> str:
        """Query endpoint for the dataset, on the CDN host unless told otherwise."""
        cfg = self.config
        if use_cdn is not None:
            cfg = replace(cfg, use_cdn=use_cdn)
        return f"https://{cfg.host}/v{cfg.api_version}/data/query/{cfg.dataset}"

    def url_for(self, query: str, params: dict | None = None) -> str:
        """GET URL for a query; GROQ parameters travel as $name=<JSON value>."""
        args = {"query": query}
        for name, value in (params or {}).items():
            args[f"${name}"] = json.dumps(value)
        return f"{self.endpoint()}?{urllib.parse.urlencode(args)}"

    def _request(self, query: str, params: dict | None) -> urllib.request.Request:
        headers = {"User-Agent": "Portfolio-Builder", "Accept": "application/json"}
        try:
            url = self.url_for(query, params)
        except (TypeError, ValueError, AttributeError) as e:
            raise SanityQueryError(f"Query parameters are not a JSON mapping: {e}") from e
        if len(url) <= MAX_GET_URL_LENGTH:
            return urllib.request.Request(url, headers=headers)

        # POST bypasses the CDN
        body = json.dumps({"query": query, "params": params or {}}).encode()
        headers["Content-Type"] = "application/json"
        return urllib.request.Request(
            self.endpoint(use_cdn=False), data=body, headers=headers, method="POST"
        )

    def fetch(self, query: str, params: dict | None = None):
        """
        Run a GROQ query and return the `result` member of the response.

        Queries whose GET URL would exceed MAX_GET_URL_LENGTH are sent as a
        POST to the live API. Raises SanityQueryError on anything other than
        a well-formed answer.
        """
        if not isinstance(query, str) or not query.strip():
            raise SanityQueryError(f"Invalid query: {query!r}")

        req = self._request(query, params)
        host = urllib.parse.urlparse(req.full_url).netloc
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            raise SanityQueryError(f"HTTP {e.code} from {host}: {_error_description(e)}") from e
        except urllib.error.URLError as e:
            raise SanityQueryError(f"Could not reach {host}: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            raise SanityQueryError(f"Request to {host} failed: {type(e).__name__}: {e}") from e

        try:
            data = json.loads(raw.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SanityQueryError(f"Response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise SanityQueryError("Response is not a JSON object")
        return data.get("result")


def _error_description(error: urllib.error.HTTPError) -> str:
    """Pull Sanity's error description out of an HTTP error body, if any."""
    try:
        body = json.loads(error.read().decode()) if error.fp else {}
    except (ValueError, OSError):
        return error.reason or ""
    detail = body.get("error") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return detail.get("description") or detail.get("type") or str(error.reason)
    if isinstance(detail, str):
        return detail
    return str(error.reason)


client = SanityClient(load_config())


# ============================================================================
# DEFENSIVE FETCH
# ============================================================================

def _is_empty(result) -> bool:
    """None, or a list, dict or string with nothing in it."""
    if result is None:
        return True
    return isinstance(result, (list, dict, str)) and len(result) == 0


def fetch_from_sanity(query, fallback=None, params=None, sanity_client=None):
    """
    Fetch from Sanity, returning `fallback` if the query fails or comes back
    empty. Failures are reported on stderr and never raised.
    """
    try:
        result = (sanity_client or client).fetch(query, params)
    except Exception as e:
        print(f"Sanity fetch error: {type(e).__name__}: {e}", file=sys.stderr)
        return fallback
    if _is_empty(result):
        return fallback
    return result


# ============================================================================
# UTILITIES
# ============================================================================

def format_year(year) -> str:
    """Text form of a numeric year, '' for anything else."""
    if isinstance(year, bool) or not isinstance(year, (int, float)):
        return ""
    if isinstance(year, float):
        if math.isnan(year):
            return "NaN"
        if math.isinf(year):
            return "Infinity" if year > 0 else "-Infinity"
        if year.is_integer():
            year = int(year)
    try:
        return str(year)
    except ValueError:
        # int too long for str() under the interpreter's digit limit
        return ""


def truncate_text(text, max_length=DEFAULT_TRUNCATE_LENGTH) -> str:
    """Cut text to max_length characters and add '...'. Not word-aware."""
    if not text or not isinstance(text, str):
        return ""
    if isinstance(max_length, bool) or not isinstance(max_length, (int, float)):
        max_length = DEFAULT_TRUNCATE_LENGTH
    elif isinstance(max_length, float):
        if math.isnan(max_length):
            max_length = DEFAULT_TRUNCATE_LENGTH
        elif math.isinf(max_length):
            max_length = len(text) if max_length > 0 else 0
        else:
            max_length = int(max_length)
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def _parse_date(value) -> date | None:
    """ISO string or date/datetime to a date; None for other types."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    value = value.strip()
    if "T" in value or " " in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return date.fromisoformat(value)


def format_date(date_str) -> str:
    """Format an ISO date as '5 March 2024'; '' if it cannot be read."""
    try:
        dt = _parse_date(date_str) if date_str else None
    except (ValueError, TypeError, OverflowError):
        return ""
    if dt is None:
        return ""
    return f"{dt.day} {MONTH_NAMES[dt.month - 1]} {dt.year}"


def render_markdown(text) -> str:
    """Convert a markdown field to HTML, '' for anything that is not text."""
    if not text or not isinstance(text, str):
        return ""
    md_converter.reset()
    return md_converter.convert(text)
