"""
Tests for the Apify content source adapter with the Apify client faked out
"""
import time

import pytest
from tenacity import wait_none

from app.models.search import Platform
from app.scrapers import apify_content_source as source_module
from app.scrapers.apify_content_source import (
    ApifyContentSource,
    ContentSourceError,
    ContentSourceRunFailedError,
    ContentSourceTimeoutError,
)


class FakeDataset:
    def __init__(self, items):
        self.items = items

    def iterate_items(self):
        yield from self.items


class FakeActor:
    def __init__(self, client):
        self.client = client

    def call(self, run_input=None, timeout_secs=None, wait_secs=None):
        self.client.calls.append(run_input)
        self.client.wait_secs.append(wait_secs)
        outcome = self.client.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == "sleep":
            time.sleep(0.5)
            return {"id": "run_slow", "status": "SUCCEEDED", "defaultDatasetId": "ds_1"}
        return outcome


class FakeApifyClient:
    """Records actor inputs and replays queued run outcomes"""
    outcomes = []
    calls = []
    wait_secs = []
    items = []

    def __init__(self, token):
        self.token = token

    def actor(self, actor_id):
        FakeApifyClient.last_actor_id = actor_id
        return FakeActor(FakeApifyClient)

    def dataset(self, dataset_id):
        return FakeDataset(FakeApifyClient.items)


@pytest.fixture
def fake_apify(monkeypatch):
    FakeApifyClient.outcomes = []
    FakeApifyClient.calls = []
    FakeApifyClient.wait_secs = []
    FakeApifyClient.items = []
    monkeypatch.setattr(source_module, "ApifyClient", FakeApifyClient)
    monkeypatch.setattr(ApifyContentSource._run_with_retry.retry, "wait", wait_none())
    return FakeApifyClient


async def test_successful_run_returns_items(fake_apify):
    fake_apify.outcomes = [{"id": "run_1", "status": "SUCCEEDED", "defaultDatasetId": "ds_1"}]
    fake_apify.items = [{"postId": "1"}, {"postId": "2"}]

    source = ApifyContentSource(api_token="token")
    run = await source.fetch_posts(Platform.FACEBOOK, ["https://www.facebook.com/ExamplePage"], 20)

    assert run.run_id == "run_1"
    assert run.status == "SUCCEEDED"
    assert run.items == [{"postId": "1"}, {"postId": "2"}]
    assert fake_apify.calls[0]["startUrls"] == [{"url": "https://www.facebook.com/ExamplePage"}]
    assert fake_apify.calls[0]["maxPosts"] == 20
    assert fake_apify.calls[0]["scrapePosts"] is True


async def test_failed_run_status_is_not_retried(fake_apify):
    fake_apify.outcomes = [{"id": "run_2", "status": "FAILED", "defaultDatasetId": "ds_2"}]

    source = ApifyContentSource(api_token="token")
    with pytest.raises(ContentSourceRunFailedError) as exc_info:
        await source.fetch_posts(Platform.FACEBOOK, ["https://www.facebook.com/x"], 5)

    assert exc_info.value.run_id == "run_2"
    assert len(fake_apify.calls) == 1


async def test_transient_errors_are_retried(fake_apify):
    fake_apify.outcomes = [
        ConnectionError("reset by peer"),
        {"id": "run_3", "status": "SUCCEEDED", "defaultDatasetId": "ds_3"},
    ]
    fake_apify.items = [{"postId": "9"}]

    source = ApifyContentSource(api_token="token")
    run = await source.fetch_posts(Platform.INSTAGRAM, ["https://www.instagram.com/x/"], 5)

    assert run.run_id == "run_3"
    assert len(fake_apify.calls) == 2
    assert fake_apify.calls[0]["directUrls"] == ["https://www.instagram.com/x/"]


async def test_slow_run_times_out(fake_apify):
    fake_apify.outcomes = ["sleep"]

    source = ApifyContentSource(api_token="token", timeout_seconds=0.1)
    with pytest.raises(ContentSourceTimeoutError):
        await source.fetch_posts(Platform.TIKTOK, ["https://www.tiktok.com/@x"], 5)


async def test_missing_token_fails_fast(fake_apify):
    source = ApifyContentSource(api_token="")
    source.api_token = None
    with pytest.raises(ContentSourceError):
        await source.fetch_posts(Platform.FACEBOOK, ["https://www.facebook.com/x"], 5)
    assert fake_apify.calls == []


async def test_actor_wait_is_bounded_by_timeout(fake_apify):
    fake_apify.outcomes = [{"id": "run_4", "status": "SUCCEEDED", "defaultDatasetId": "ds_4"}]

    source = ApifyContentSource(api_token="token", timeout_seconds=120)
    await source.fetch_posts(Platform.FACEBOOK, ["https://www.facebook.com/x"], 5)

    assert fake_apify.wait_secs == [120]
