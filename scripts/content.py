#!/usr/bin/env python3
"""
Portfolio content catalogue.

One GROQ query per collection the site renders, each fetched defensively so
a page still builds (empty) when Sanity is down.

COLLECTIONS:
    publications    journal articles, chapters, reports
    media           press, interviews, podcasts
    projects        research projects
    roles           positions held
    images          gallery images
    timeline        career timeline entries

USAGE:
    python content.py                       # Count documents in every collection
    python content.py projects roles        # Count selected collections
    python content.py publications --json   # Dump one collection as JSON
"""

import argparse
import json

from jinja2 import Environment
from markupsafe import Markup

from sanity import fetch_from_sanity, format_date, format_year, render_markdown, truncate_text


# ============================================================================
# QUERIES
# ============================================================================

QUERIES = {
    "publications": '*[_type == "publication"] | order(year desc, title asc)',
    "media": '*[_type == "media"] | order(date desc)',
    "projects": '*[_type == "project"] | order(coalesce(order, 999) asc, startYear desc)',
    "roles": '*[_type == "role"] | order(startYear desc)',
    "images": '*[_type == "galleryImage"]{..., "url": image.asset->url, "alt": coalesce(alt, caption, "")}',
    "timeline": '*[_type == "timelineEvent"] | order(date desc)',
}


def fetch_collection(name: str, sanity_client=None) -> list:
    """Fetch every document of one collection, [] if Sanity has nothing."""
    query = QUERIES[name]
    return fetch_from_sanity(query, fallback=[], sanity_client=sanity_client)


def fetch_all(sanity_client=None) -> dict:
    """Fetch every collection, keyed by name."""
    return {name: fetch_collection(name, sanity_client) for name in QUERIES}


# ============================================================================
# TEMPLATE FILTERS
# ============================================================================

def register_filters(env: Environment) -> Environment:
    """Make the formatting helpers available to page templates."""
    env.filters["format_year"] = format_year
    env.filters["format_date"] = format_date
    env.filters["truncate_text"] = truncate_text
    env.filters["markdown"] = lambda text: Markup(render_markdown(text))
    return env


# ============================================================================
# MAIN
# ============================================================================

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Preview portfolio content from Sanity")
    parser.add_argument("collections", nargs="*",
                        help=f"Collections to fetch (default: all of {', '.join(QUERIES)})")
    parser.add_argument("--json", action="store_true",
                        help="Print the documents of a single collection as JSON")
    args = parser.parse_args(argv)

    names = args.collections or list(QUERIES)
    unknown = [name for name in names if name not in QUERIES]
    if unknown:
        parser.error(f"unknown collection: {', '.join(unknown)}")

    if args.json:
        if len(names) != 1:
            parser.error("--json needs exactly one collection")
        print(json.dumps(fetch_collection(names[0]), indent=2, ensure_ascii=False))
        return 0

    print("Fetching content from Sanity...")
    for name in names:
        docs = fetch_collection(name)
        print(f"  → {name}: {len(docs)} documents")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
