import asyncio
import time
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx

from competitor_signals.config import settings
from competitor_signals.schemas.analysis import SourceToggles
from competitor_signals.services import feeds
from competitor_signals.services.asknews_service import AskNewsProvider, normalize_article
from competitor_signals.services.feeds import (
    FeedProvider,
    HeuristicNewsProvider,
    bing_news_rss_url,
    detect_signal_type,
    feed_source_name,
    is_noise,
    is_recent,
    normalize_feed_entry,
    parse_published,
)
from competitor_signals.services.hacker_news import (
    comment_sentiment,
    extract_opinion_snippet,
    normalize_comment_hits,
    overall_sentiment,
)
from competitor_signals.services.providers import ProviderContext
from competitor_signals.services.trustpilot import (
    TrustpilotProvider,
    normalize_company_details,
    rating_to_sentiment,
)

from conftest import make_item


def _rss(*items):
    body = "".join(
        f"<item><title>{t}</title><description>{d}</description><link>{l}</link><pubDate>{p}</pubDate></item>"
        for t, d, l, p in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>{body}</channel></rss>'


def _mock_client(handler):
    def factory(timeout):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=timeout)
    return factory


def test_normalize_feed_entry():
    entry = {
        "title": "Acme &amp; Co <b>raises</b> Series A",
        "summary": "<p>The round was led by Example Ventures.</p>",
        "link": " https://news.example/acme ",
        "published_parsed": time.struct_time((2026, 3, 1, 12, 0, 0, 6, 60, 0)),
    }
    item = normalize_feed_entry(entry)
    assert item.title == "Acme & Co raises Series A"
    assert item.content == "The round was led by Example Ventures."
    assert item.url == "https://news.example/acme"
    assert item.published_at == "2026-03-01T12:00:00+00:00"
    assert item.type == "funding"
    assert item.source_type == "rss"
    assert normalize_feed_entry({"title": "No body"}) is None
    assert normalize_feed_entry(entry, forced_type="social").type == "social"


def test_signal_type_detection():
    assert detect_signal_type("Acme raised a seed round") == "funding"
    assert detect_signal_type("Acme launches new feature") == "product"
    assert detect_signal_type("Acme CEO on LinkedIn") == "social"
    assert detect_signal_type("Acme moves headquarters") == "news"


def test_recency_and_noise():
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    fresh = make_item("Acme update", published_at=(now - timedelta(days=10)).isoformat())
    old = make_item("Acme update", published_at=(now - timedelta(days=120)).isoformat())
    undated = make_item("Acme update").model_copy(update={"published_at": None})
    assert is_recent(fresh, now=now)
    assert not is_recent(old, now=now)
    assert is_recent(undated, now=now)
    assert is_noise(make_item("Acme tutorial: how to use the dashboard"))
    assert not is_noise(make_item("Customers like Acme's new pricing"))
    assert parse_published("Mon, 02 Mar 2026 10:00:00 GMT").year == 2026
    assert parse_published("not a date") is None


def test_feed_helpers():
    assert bing_news_rss_url('"Acme" funding', 3).startswith("https://www.bing.com/news/search?format=RSS&q=%22Acme%22%20funding")
    assert feed_source_name("https://blog.acme.io/rss.xml") == "RSS: blog.acme.io"


def test_feed_provider_filters_by_competitor_and_noise(monkeypatch):
    recent = format_datetime(datetime.now(timezone.utc) - timedelta(days=2))
    stale = format_datetime(datetime.now(timezone.utc) - timedelta(days=200))
    xml = _rss(
        ("Acme opens Berlin office", "Expansion in Europe", "https://blog.example/1", recent),
        ("Globex hires CFO", "Finance news", "https://blog.example/2", recent),
        ("Acme tutorial", "How to use Acme dashboards", "https://blog.example/3", recent),
        ("Acme in 2020", "Old news about Acme", "https://blog.example/4", stale),
    )

    def handler(request):
        return httpx.Response(200, text=xml)

    monkeypatch.setattr(feeds, "_client", _mock_client(handler))
    items = asyncio.run(FeedProvider(timeout=2).fetch(
        "https://blog.example/rss", ProviderContext(competitors=["Acme"]),
    ))
    assert [i.title for i in items] == ["Acme opens Berlin office"]


def test_heuristic_provider_queries_enabled_toggles_only(monkeypatch):
    recent = format_datetime(datetime.now(timezone.utc))
    requested = []

    def handler(request):
        requested.append(request.url.params["q"])
        return httpx.Response(200, text=_rss(
            ("Acme raises growth round", "Investors back Acme", f"https://n.example/{len(requested)}", recent),
        ))

    monkeypatch.setattr(feeds, "_client", _mock_client(handler))
    context = ProviderContext(sources=SourceToggles(news=False, funding=True, social=False, products=True))
    items = asyncio.run(HeuristicNewsProvider(timeout=2).fetch("Acme", context))

    assert len(requested) == 2
    assert all('"Acme"' in q for q in requested)
    assert sorted(i.type for i in items) == ["funding", "product"]


def test_heuristic_provider_survives_failing_queries(monkeypatch):
    def handler(request):
        return httpx.Response(503)

    monkeypatch.setattr(feeds, "_client", _mock_client(handler))
    items = asyncio.run(HeuristicNewsProvider(timeout=2).fetch("Acme", ProviderContext()))
    assert items == []


def test_asknews_article_normalization():
    item = normalize_article({
        "eng_title": "Acme acquires Initech",
        "summary": "<p>Deal closes in Q3.</p>",
        "article_url": "https://news.example/deal",
        "pub_date": datetime(2026, 5, 1, tzinfo=timezone.utc),
    })
    assert item.title == "Acme acquires Initech"
    assert item.content == "Deal closes in Q3."
    assert item.published_at == "2026-05-01T00:00:00+00:00"
    assert item.source_type == "asknews"
    assert normalize_article({"summary": "no title"}) is None


def test_asknews_unconfigured_returns_nothing():
    provider = AskNewsProvider(client_id="", client_secret="")
    provider.client_id = provider.client_secret = ""
    assert asyncio.run(provider.fetch("Acme", ProviderContext())) == []


def test_trustpilot_normalization():
    payload = {
        "data": {
            "company": {"domain": "acme.com", "rating": {"average": 4.2, "count": 812}},
            "reviews": [
                {"text": "Great support team", "rating": 5, "author": "Dana"},
                {"title": "Slow refunds", "rating": 2},
                {"text": ""},
                {"text": "Solid product", "rating": "4"},
                {"text": "Fine", "rating": 3},
            ],
        }
    }
    data = normalize_company_details(payload, "acme.com")
    assert data.platform == "trustpilot"
    assert data.average_rating == 4.2
    assert data.total_reviews == 812
    assert data.sentiment == "positive"
    assert data.sentiment_score == 84
    assert [q.text for q in data.top_quotes] == ["Great support team", "Slow refunds", "Solid product"]
    assert data.top_quotes[0].url == "https://www.trustpilot.com/review/acme.com"
    assert data.top_quotes[2].rating == 4.0


def test_trustpilot_body_string_and_trust_score():
    data = normalize_company_details({"body": '{"data": {"trustScore": "2.1", "numberOfReviews": 9}}'}, "x.io")
    assert data.average_rating == 2.1
    assert data.total_reviews == 9
    assert data.sentiment == "negative"


def test_rating_thresholds():
    assert rating_to_sentiment(None) == "neutral"
    assert rating_to_sentiment(4.0) == "positive"
    assert rating_to_sentiment(2.5) == "neutral"
    assert rating_to_sentiment(2.4) == "negative"


def test_trustpilot_needs_domain_and_key():
    provider = TrustpilotProvider(api_key="k")
    assert asyncio.run(provider.fetch("Acme", ProviderContext())) is None
    keyless = TrustpilotProvider()
    keyless.api_key = ""
    assert asyncio.run(keyless.fetch("Acme", ProviderContext(domain="acme.com"))) is None


def test_omitted_credentials_come_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "TRUSTPILOT_RAPIDAPI_KEY", "rapid-key")
    monkeypatch.setattr(settings, "ASKNEWS_CLIENT_ID", "client")
    monkeypatch.setattr(settings, "ASKNEWS_CLIENT_SECRET", "secret")

    assert TrustpilotProvider().api_key == "rapid-key"
    assert TrustpilotProvider(api_key="explicit").api_key == "explicit"
    asknews = AskNewsProvider()
    assert (asknews.client_id, asknews.client_secret) == ("client", "secret")
    assert asknews.configured


def test_hacker_news_comment_normalization():
    hits = [
        {"comment_text": "I switched to Acme last year and love the API, great docs.", "author": "pg", "points": 3, "objectID": "1"},
        {"comment_text": "Acme was slow and buggy for us, would avoid.", "author": "dang", "points": 10, "objectID": "2"},
        {"comment_text": "Acme", "objectID": "3"},
        {"comment_text": "Unrelated thread about databases and good indexes", "objectID": "4"},
        {"comment_text": "Tried Acme, it is a great and reliable tool.", "objectID": "5"},
    ]
    data = normalize_comment_hits(hits, "Acme")
    assert data.platform == "hackernews"
    assert data.total_mentions == 3
    assert data.sentiment == "positive"
    assert data.sentiment_score == 75
    assert data.top_quotes[0].author == "dang"
    assert data.top_quotes[0].url == "https://news.ycombinator.com/item?id=2"
    assert data.top_quotes[2].author == "Anonymous"


def test_hacker_news_sentiment_rules():
    assert comment_sentiment("great and reliable") == "positive"
    assert comment_sentiment("slow and buggy") == "negative"
    assert overall_sentiment(["great", "great", "bad"]) == "positive"
    assert overall_sentiment(["great", "bad"]) == "neutral"
    snippet = extract_opinion_snippet("Intro sentence. I really love Acme for this. Another one.", "Acme")
    assert snippet == "I really love Acme for this."
    assert len(extract_opinion_snippet("Acme " + "x" * 400, "Acme")) == 240
