"""AskNews API integration for recent competitor news."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from asknews_sdk import AskNewsSDK

from competitor_signals.config import settings
from competitor_signals.schemas.signals import SignalItem
from competitor_signals.services.feeds import clean_html, detect_signal_type
from competitor_signals.services.providers import ProviderContext

logger = logging.getLogger(__name__)

MAX_ARTICLES = 8


def _field(article: Any, *names: str) -> Any:
    for name in names:
        value = article.get(name) if isinstance(article, dict) else getattr(article, name, None)
        if value:
            return value
    return None


def normalize_article(article: Any) -> Optional[SignalItem]:
    """Map one AskNews search result (dict or SDK object) to a SignalItem.

    Reads ``eng_title``/``title``, ``summary``, ``article_url`` and ``pub_date``.
    """
    title = _field(article, "eng_title", "title")
    if not title:
        return None
    content = clean_html(_field(article, "summary") or "")
    pub = _field(article, "pub_date")
    if isinstance(pub, datetime):
        pub = pub.isoformat()
    url = _field(article, "article_url")
    return SignalItem(
        title=str(title),
        content=content,
        url=str(url) if url else None,
        published_at=str(pub) if pub else None,
        type=detect_signal_type(str(title), content),
        source_type="asknews",
    )


class AskNewsProvider:
    """Recent-news search for one competitor via the AskNews SDK."""

    source_name = "News Search"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        days_back: int = 7,
    ):
        self.client_id = client_id or settings.ASKNEWS_CLIENT_ID
        self.client_secret = client_secret or settings.ASKNEWS_CLIENT_SECRET
        self.days_back = days_back
        self._client: Any = None

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _get_client(self) -> Any:
        """Lazy-init AskNews SDK client."""
        if self._client is None:
            self._client = AskNewsSDK(
                client_id=self.client_id,
                client_secret=self.client_secret,
                scopes=["news"],
            )
        return self._client

    def _search(self, competitor: str) -> list[Any]:
        client = self._get_client()
        since = datetime.now(timezone.utc) - timedelta(days=self.days_back)
        response = client.news.search_news(
            query=f"{competitor} news recent developments",
            n_articles=MAX_ARTICLES,
            return_type="dicts",
            method="kw",
            start_timestamp=int(since.timestamp()),
        )
        return list(getattr(response, "as_dicts", None) or [])

    async def fetch(self, competitor: str, context: ProviderContext) -> list[SignalItem]:
        if not self.configured:
            return []
        articles = await asyncio.to_thread(self._search, competitor)
        items = [normalize_article(a) for a in articles[:MAX_ARTICLES]]
        logger.info("AskNews returned %d articles for %s", len(articles), competitor)
        return [i for i in items if i is not None]
