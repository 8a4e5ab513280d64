import asyncio
from datetime import datetime, timedelta, timezone

from competitor_signals.database import init_db, make_engine, make_session_factory
from competitor_signals.services.report_store import ReportDraft, ReportStore


def _draft(user_id="u1", **metadata):
    return ReportDraft(
        user_id=user_id,
        title="Acme Analysis",
        competitors=["Acme"],
        signals=[{"source": "News Search", "competitor": "Acme", "items": []}],
        summary='{"executive_summary": "ok"}',
        metadata=metadata,
    )


def _run_with_store(tmp_path, scenario):
    async def run():
        engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'signals.db'}")
        try:
            await init_db(engine)
            return await scenario(ReportStore(make_session_factory(engine)))
        finally:
            await engine.dispose()

    return asyncio.run(run())


def test_reports_round_trip_through_sqlite(tmp_path):
    async def scenario(store):
        created = await store.create(_draft(mode="free"))
        await store.create(_draft(user_id="u2"))
        fetched = await store.get_by_id(created.id)
        listed = await store.list_for_user("u1")
        updated = await store.update_metadata(created.id, {"enhanced": [], "mode": "premium"})
        missing = await store.update_metadata("nope", {"x": 1})
        return created, fetched, listed, updated, missing

    created, fetched, listed, updated, missing = _run_with_store(tmp_path, scenario)
    assert len(created.id) == 36
    assert fetched.signals[0]["source"] == "News Search"
    assert fetched.report_metadata == {"mode": "free"}
    assert fetched.created_at is not None
    assert [r.id for r in listed] == [created.id]
    assert updated.report_metadata == {"mode": "premium", "enhanced": []}
    assert missing is None


def test_has_report_since_filters_by_type(tmp_path):
    async def scenario(store):
        await store.create(_draft(type="newsletter_summary"))
        since = datetime.now(timezone.utc) - timedelta(hours=1)
        return (
            await store.has_report_since("u1", "newsletter_summary", since),
            await store.has_report_since("u1", "other", since),
            await store.has_report_since("u2", "newsletter_summary", since),
            await store.has_report_since("u1", "newsletter_summary", since + timedelta(hours=2)),
        )

    assert _run_with_store(tmp_path, scenario) == (True, False, False, False)


def test_tracked_rows(tmp_path):
    when = datetime(2026, 10, 1, tzinfo=timezone.utc)

    async def scenario(store):
        stripe = await store.add_tracked("u1", "Stripe", "stripe.com", "stripe")
        await store.add_tracked("u1", "Adyen", None, "adyen")
        await store.add_tracked("u2", "Square", None, "square")
        await store.mark_tracked_analyzed("u1", when)
        rows = await store.list_tracked("u1")
        users = await store.users_with_tracked()
        removed = await store.remove_tracked("u1", stripe.id)
        removed_again = await store.remove_tracked("u1", stripe.id)
        return rows, users, removed, removed_again, await store.list_tracked("u1")

    rows, users, removed, removed_again, remaining = _run_with_store(tmp_path, scenario)
    assert [r.competitor_name for r in rows] == ["Stripe", "Adyen"]
    assert all(r.last_analyzed_at is not None for r in rows)
    assert sorted(users) == ["u1", "u2"]
    assert removed is True
    assert removed_again is False
    assert [r.canonical_key for r in remaining] == ["adyen"]
