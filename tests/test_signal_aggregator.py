import asyncio

from competitor_signals.services.signal_aggregator import (
    MAX_ITEMS_PER_BUNDLE,
    SignalAggregator,
    dedupe_items,
    finalize_items,
    is_same_story,
    trim_text_content,
)

from conftest import FakeNewsProvider, make_item


class FakeFeedSource:
    def __init__(self, items_by_url):
        self.items_by_url = items_by_url

    async def fetch(self, url, context):
        value = self.items_by_url[url]
        if isinstance(value, Exception):
            raise value
        return value


def test_short_content_is_only_stripped_of_markup():
    assert trim_text_content("<p>Acme raised $10M.</p>") == "Acme raised $10M."
    assert trim_text_content("") == ""


def test_long_content_is_cut_to_sentences():
    body = " ".join(f"Sentence number {i} about the U.S. market expansion." for i in range(60))
    trimmed = trim_text_content(body)
    assert len(trimmed) <= 800
    assert "U.S." in trimmed


def test_same_story_by_url_or_headline():
    a = make_item("Acme raises Series B funding round", url="https://news.example/acme-b")
    b = make_item("Different headline entirely here", url="https://news.example/acme-b")
    c = make_item("Acme raises Series B funding round, report says", url="https://other.example/x")
    d = make_item("Globex launches analytics product", url="https://other.example/y")
    assert is_same_story(a, b)
    assert is_same_story(a, c)
    assert not is_same_story(a, d)
    assert dedupe_items([a, b, c, d]) == [a, d]


def test_finalize_sorts_newest_first_and_caps():
    items = [
        make_item(f"Headline{i}", url=f"https://e.example/{i}", published_at=f"2026-01-{i + 1:02d}T00:00:00Z")
        for i in range(20)
    ]
    final = finalize_items(items)
    assert len(final) == MAX_ITEMS_PER_BUNDLE
    assert final[0].published_at == "2026-01-20T00:00:00Z"


def test_bundles_in_competitor_then_provider_order_then_feeds():
    slow = FakeNewsProvider("News Search", delay=0.03)
    fast = FakeNewsProvider("Aggregated Sources")
    feeds = FakeFeedSource({
        "https://blog.acme.io/feed": [make_item("Acme ships v2", url="https://blog.acme.io/v2")],
    })
    agg = SignalAggregator([slow, fast], feed_source=feeds, timeout=2, feed_timeout=2)
    partials = []

    bundles = asyncio.run(agg.aggregate(["Acme", "Globex"], ["https://blog.acme.io/feed"], on_partial=partials.append))

    assert [(b.competitor, b.source) for b in bundles] == [
        ("Acme", "News Search"),
        ("Acme", "Aggregated Sources"),
        ("Globex", "News Search"),
        ("Globex", "Aggregated Sources"),
        ("Multiple", "RSS: blog.acme.io"),
    ]
    assert len(partials) == 5
    assert len(partials[-1]["results"]) == 5


def test_failed_and_empty_sources_are_dropped():
    broken = FakeNewsProvider("News Search", raises=RuntimeError("503"))
    empty = FakeNewsProvider("Aggregated Sources", items=[])
    feeds = FakeFeedSource({"https://bad.example/rss": ValueError("not a feed")})
    agg = SignalAggregator([broken, empty], feed_source=feeds, timeout=2, feed_timeout=2)

    bundles = asyncio.run(agg.aggregate(["Acme"], ["https://bad.example/rss"]))

    assert bundles == []
    assert broken.calls == ["Acme"]


def test_slow_provider_times_out_without_blocking_others():
    slow = FakeNewsProvider("News Search", delay=0.5)
    fast = FakeNewsProvider("Aggregated Sources")
    agg = SignalAggregator([slow, fast], timeout=0.05)

    bundles = asyncio.run(agg.aggregate(["Acme"]))

    assert [b.source for b in bundles] == ["Aggregated Sources"]
