"""
Apify Content Source - Post collection through Apify actors
Runs the platform's scraper actor for a list of target URLs and returns the dataset items
"""
import asyncio
import logging
from typing import Dict, Any, List, Optional
from pydantic import BaseModel
from apify_client import ApifyClient
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

from app.core.config import settings
from app.models.search import Platform

logger = logging.getLogger(__name__)


class ContentSourceError(Exception):
    """Base error for content source failures"""
    def __init__(self, message: str, run_id: Optional[str] = None):
        super().__init__(message)
        self.run_id = run_id


class ContentSourceTimeoutError(ContentSourceError):
    """The run did not finish within the configured timeout"""
    pass


class ContentSourceRunFailedError(ContentSourceError):
    """The actor run finished with a status other than SUCCEEDED - not retried"""
    pass


class ContentSourceInstabilityError(ContentSourceError):
    """Temporary Apify API issue that should be retried"""
    pass


class ContentSourceRun(BaseModel):
    run_id: Optional[str] = None
    status: str
    items: List[Dict[str, Any]] = []


class ApifyContentSource:
    """Thin adapter over the Apify actor platform"""

    SUCCEEDED = "SUCCEEDED"

    def __init__(self, api_token: Optional[str] = None, timeout_seconds: Optional[int] = None):
        self.api_token = api_token or settings.APIFY_API_TOKEN
        self.timeout_seconds = timeout_seconds or settings.CONTENT_SOURCE_TIMEOUT_SECONDS
        self.actor_ids = {
            Platform.FACEBOOK: settings.APIFY_FACEBOOK_ACTOR_ID,
            Platform.INSTAGRAM: settings.APIFY_INSTAGRAM_ACTOR_ID,
            Platform.TIKTOK: settings.APIFY_TIKTOK_ACTOR_ID,
        }

    def _build_run_input(self, platform: Platform, target_urls: List[str], max_posts: int) -> Dict[str, Any]:
        """Actor input for each platform's scraper"""
        if platform == Platform.INSTAGRAM:
            return {
                "directUrls": target_urls,
                "resultsType": "posts",
                "resultsLimit": max_posts,
                "addParentData": False,
            }
        if platform == Platform.TIKTOK:
            return {
                "profiles": target_urls,
                "resultsPerPage": max_posts,
                "shouldDownloadVideos": False,
                "shouldDownloadCovers": False,
            }
        return {
            "startUrls": [{"url": url} for url in target_urls],
            "maxPosts": max_posts,
            "maxPostComments": 0,
            "maxReviewComments": 0,
            "scrapeAbout": False,
            "scrapePosts": True,
            "scrapeServices": False,
            "scrapeReviews": False,
        }

    def _call_actor(self, actor_id: str, run_input: Dict[str, Any]) -> ContentSourceRun:
        """Blocking actor call; runs in a worker thread"""
        client = ApifyClient(self.api_token)

        try:
            run = client.actor(actor_id).call(
                run_input=run_input,
                timeout_secs=self.timeout_seconds,
                # bounded wait so the worker thread returns near the timeout
                wait_secs=max(1, int(self.timeout_seconds))
            )
        except Exception as e:
            raise ContentSourceInstabilityError(f"Apify actor call failed: {str(e)}") from e

        if not run:
            raise ContentSourceInstabilityError("Apify returned no run information")

        run_id = run.get("id")
        status = run.get("status")
        if status != self.SUCCEEDED:
            raise ContentSourceRunFailedError(f"Actor run failed with status: {status}", run_id=run_id)

        items = []
        dataset_id = run.get("defaultDatasetId")
        if dataset_id:
            try:
                for item in client.dataset(dataset_id).iterate_items():
                    items.append(item)
            except Exception as e:
                raise ContentSourceInstabilityError(f"Failed to read dataset {dataset_id}: {str(e)}", run_id=run_id) from e

        return ContentSourceRun(run_id=run_id, status=status, items=items)

    @retry(
        stop=stop_after_attempt(settings.CONTENT_SOURCE_MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=1.5, min=2, max=15),
        retry=retry_if_exception_type(ContentSourceInstabilityError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    async def _run_with_retry(self, actor_id: str, run_input: Dict[str, Any]) -> ContentSourceRun:
        return await asyncio.to_thread(self._call_actor, actor_id, run_input)

    async def fetch_posts(self, platform: Platform, target_urls: List[str], max_posts: int) -> ContentSourceRun:
        """
        Run the platform's actor and collect its dataset items

        Raises:
            ContentSourceTimeoutError: run exceeded timeout_seconds
            ContentSourceRunFailedError: run finished with a non-SUCCEEDED status
            ContentSourceError: any other content source failure
        """
        if not self.api_token:
            raise ContentSourceError("APIFY_API_TOKEN is not configured")

        platform = Platform(platform)
        actor_id = self.actor_ids[platform]
        run_input = self._build_run_input(platform, target_urls, max_posts)

        logger.info(f"[APIFY] Starting {platform.value} run on {actor_id} for {target_urls} (max {max_posts} posts)")

        try:
            result = await asyncio.wait_for(
                self._run_with_retry(actor_id, run_input),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise ContentSourceTimeoutError(
                f"Content source did not finish within {self.timeout_seconds} seconds"
            )

        logger.info(f"[APIFY] Run {result.run_id} finished with {len(result.items)} items")
        return result


apify_content_source = ApifyContentSource()
