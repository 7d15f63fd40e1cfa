"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import http.client
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from contextlib import closing
from dataclasses import dataclass, field

USER_AGENT = "gator"
DEFAULT_TIMEOUT = 10.0


class FeedError(Exception):
    """A feed could not be fetched or decoded."""


@dataclass
class RSSItem:
    """One entry of a feed's channel."""

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    """The channel of an RSS document and its items."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _direct_text(element: ET.Element) -> str:
    """Character data directly inside ``element``, skipping nested elements."""
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


def _child_texts(element: ET.Element) -> dict[str, str]:
    values: dict[str, str] = {}
    for child in element:
        values[_local_name(child.tag)] = _direct_text(child)
    return values


def parse_feed(data: bytes | str) -> RSSFeed:
    """Decode an RSS document, unescaping HTML entities in titles and descriptions."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise FeedError(f"xml decoding failed: {exc}") from exc

    feed = RSSFeed()
    for channel in root:
        if _local_name(channel.tag) != "channel":
            continue
        for child in channel:
            name = _local_name(child.tag)
            if name == "item":
                values = _child_texts(child)
                feed.items.append(
                    RSSItem(
                        title=html.unescape(values.get("title", "")),
                        link=values.get("link", ""),
                        description=html.unescape(values.get("description", "")),
                        pub_date=values.get("pubDate", ""),
                    )
                )
            elif name in ("title", "link", "description"):
                setattr(feed, name, _direct_text(child))

    feed.title = html.unescape(feed.title)
    feed.description = html.unescape(feed.description)
    return feed


def fetch_feed(url: str, timeout: float = DEFAULT_TIMEOUT) -> RSSFeed:
    """Download the feed at ``url`` and parse it."""
    try:
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    except ValueError as exc:
        raise FeedError(f"http request creation failed: {exc}") from exc

    try:
        response = urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        # The status code is not checked; the body is decoded either way.
        response = exc
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
        raise FeedError(f"http request failed: {exc}") from exc

    with closing(response):
        try:
            data = response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise FeedError(f"failed to read response body: {exc}") from exc

    return parse_feed(data)