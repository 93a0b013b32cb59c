"""
Tests for raw post normalization and engagement scoring
"""
import uuid
from datetime import datetime, timezone

from app.models.search import Platform
from app.services.content_normalizer import normalize, calculate_engagement_score, RawPost


QUERY_ID = uuid.uuid4()


class TestSkipRule:

    def test_record_without_id_or_url_is_skipped(self):
        assert normalize({"text": "orphan", "likes": 5}, QUERY_ID, Platform.FACEBOOK) is None

    def test_blank_identifiers_are_skipped(self):
        assert normalize({"postId": "  ", "url": ""}, QUERY_ID, Platform.FACEBOOK) is None

    def test_non_object_record_is_skipped(self):
        assert normalize(["not", "a", "post"], QUERY_ID, Platform.FACEBOOK) is None

    def test_url_alone_is_enough(self):
        draft = normalize({"url": "https://facebook.com/p/1"}, QUERY_ID, Platform.FACEBOOK)
        assert draft is not None
        assert draft.external_id == "https://facebook.com/p/1"


class TestFieldMapping:

    def test_post_id_wins_over_url(self):
        draft = normalize({"postId": "123", "url": "https://facebook.com/p/123"}, QUERY_ID, Platform.FACEBOOK)
        assert draft.external_id == "123"
        assert draft.url == "https://facebook.com/p/123"

    def test_missing_counters_default_to_zero(self):
        draft = normalize({"postId": "1"}, QUERY_ID, Platform.FACEBOOK)
        assert draft.likes_count == 0
        assert draft.comments_count == 0
        assert draft.shares_count == 0
        assert draft.views_count == 0
        assert draft.engagement_score == 0

    def test_unparseable_counters_default_to_zero(self):
        draft = normalize({"postId": "1", "likes": "lots", "comments": None, "shares": {"n": 3}}, QUERY_ID, Platform.FACEBOOK)
        assert (draft.likes_count, draft.comments_count, draft.shares_count) == (0, 0, 0)

    def test_non_finite_counters_default_to_zero(self):
        draft = normalize(
            {"postId": "1", "likes": "1e400", "comments": float("nan"), "shares": float("inf"), "videoViews": "-inf"},
            QUERY_ID, Platform.FACEBOOK
        )
        assert (draft.likes_count, draft.comments_count, draft.shares_count, draft.views_count) == (0, 0, 0, 0)
        assert draft.engagement_score == 0

    def test_numeric_strings_and_floats_are_counted(self):
        draft = normalize({"postId": "1", "likes": "1,200", "comments": 4.0, "shares": "7"}, QUERY_ID, Platform.FACEBOOK)
        assert draft.likes_count == 1200
        assert draft.comments_count == 4
        assert draft.shares_count == 7

    def test_timestamp_is_unix_seconds_in_utc(self):
        draft = normalize({"postId": "1", "timestamp": 1700000000}, QUERY_ID, Platform.FACEBOOK)
        assert draft.posted_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_absent_timestamp_stays_none(self):
        draft = normalize({"postId": "1"}, QUERY_ID, Platform.FACEBOOK)
        assert draft.posted_at is None

    def test_media_page_and_reactions_carried_through(self):
        raw = {
            "postId": "1",
            "text": "hello",
            "imageUrl": "https://cdn/img.jpg",
            "videoUrl": "https://cdn/vid.mp4",
            "postType": "video",
            "pageName": "ExamplePage",
            "pageUrl": "https://www.facebook.com/ExamplePage",
            "reactions": {"like": 3, "love": 2},
        }
        draft = normalize(raw, QUERY_ID, Platform.FACEBOOK)
        assert draft.caption == "hello"
        assert draft.image_url == "https://cdn/img.jpg"
        assert draft.video_url == "https://cdn/vid.mp4"
        assert draft.post_type == "video"
        assert draft.page_name == "ExamplePage"
        assert draft.page_url == "https://www.facebook.com/ExamplePage"
        assert draft.reactions == {"like": 3, "love": 2}
        assert draft.raw_data == raw
        assert draft.search_query_id == QUERY_ID
        assert draft.platform == Platform.FACEBOOK

    def test_alternate_actor_keys(self):
        raw = {
            "shortCode": "Cx9",
            "postUrl": "https://www.instagram.com/p/Cx9/",
            "message": "alt caption",
            "likesCount": 10,
            "commentsCount": 2,
            "sharesCount": 1,
            "videoViewCount": 500,
            "displayUrl": "https://cdn/display.jpg",
        }
        draft = normalize(raw, QUERY_ID, Platform.INSTAGRAM)
        assert draft.external_id == "Cx9"
        assert draft.url == "https://www.instagram.com/p/Cx9/"
        assert draft.caption == "alt caption"
        assert draft.views_count == 500
        assert draft.image_url == "https://cdn/display.jpg"
        assert draft.engagement_score == 13

    def test_raw_post_accepts_unknown_fields(self):
        post = RawPost.model_validate({"postId": "1", "somethingNew": True})
        assert post.post_id == "1"


class TestEngagementScore:

    def test_score_is_likes_plus_comments_plus_shares(self):
        assert calculate_engagement_score(100, 10, 5) == 115

    def test_views_do_not_count(self):
        draft = normalize({"postId": "1", "likes": 1, "comments": 1, "shares": 1, "videoViews": 1000}, QUERY_ID, Platform.FACEBOOK)
        assert draft.views_count == 1000
        assert draft.engagement_score == 3
