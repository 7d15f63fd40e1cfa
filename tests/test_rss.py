import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from gator.rss import FeedError, RSSFeed, RSSItem, fetch_feed, parse_feed

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Tom &amp;amp; Jerry</title>
    <link>https://example.com/</link>
    <description>Cats &amp;lt;3 mice</description>
    <item>
      <title>First &amp;quot;post&amp;quot;</title>
      <link>https://example.com/a?x=1&amp;amp;y=2</link>
      <description>Hello &amp;amp; welcome</description>
      <pubDate>Mon, 15 Jan 2024 10:00:00 +0000</pubDate>
    </item>
    <item>
      <title>Second</title>
      <link>https://example.com/b</link>
    </item>
  </channel>
</rss>
"""


def test_parse_channel_fields_are_unescaped():
    feed = parse_feed(SAMPLE)
    assert feed.title == "Tom & Jerry"
    assert feed.link == "https://example.com/"
    assert feed.description == "Cats <3 mice"


def test_parse_items():
    feed = parse_feed(SAMPLE)
    assert len(feed.items) == 2
    first = feed.items[0]
    assert first.title == 'First "post"'
    assert first.description == "Hello & welcome"
    assert first.pub_date == "Mon, 15 Jan 2024 10:00:00 +0000"


def test_links_are_not_unescaped():
    feed = parse_feed(SAMPLE)
    assert feed.items[0].link == "https://example.com/a?x=1&amp;y=2"


def test_missing_item_fields_are_empty():
    feed = parse_feed(SAMPLE)
    assert feed.items[1] == RSSItem(title="Second", link="https://example.com/b")


def test_parse_accepts_text():
    feed = parse_feed("<rss><channel><title>T</title></channel></rss>")
    assert feed == RSSFeed(title="T")


def test_document_without_channel_gives_empty_feed():
    assert parse_feed(b"<rss></rss>") == RSSFeed()


@pytest.mark.parametrize("data", [b"", b"<rss><channel>", b"not xml at all"])
def test_invalid_xml_raises(data):
    with pytest.raises(FeedError, match="xml decoding failed"):
        parse_feed(data)


@pytest.fixture
def server():
    pages = {}
    agents = []

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            agents.append(self.headers.get("User-Agent"))
            body = pages.get(self.path, b"<rss></rss>")
            self.send_response(200 if self.path in pages else 404)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{httpd.server_address[1]}"
    yield base, pages, agents
    httpd.shutdown()
    httpd.server_close()


def test_fetch_feed_downloads_and_parses(server):
    base, pages, agents = server
    pages["/feed.xml"] = SAMPLE
    feed = fetch_feed(base + "/feed.xml")
    assert feed.title == "Tom & Jerry"
    assert len(feed.items) == 2
    assert agents == ["gator"]


def test_fetch_feed_ignores_status_code(server):
    base, _, _ = server
    feed = fetch_feed(base + "/missing")
    assert feed == RSSFeed()


def test_fetch_feed_bad_url():
    with pytest.raises(FeedError, match="http request creation failed"):
        fetch_feed("not a url")


def test_fetch_feed_connection_refused(server):
    base, _, _ = server
    port = int(base.rsplit(":", 1)[1])
    with pytest.raises(FeedError, match="http request failed"):
        fetch_feed("http://127.0.0.1:1/feed" if port != 1 else "http://127.0.0.1:2/feed", timeout=2)