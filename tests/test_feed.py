"""Tests for feed assembly."""
from reelfeed.core.enums import VideoStatus, VoteType
from reelfeed.models import Vote
from reelfeed.services.feed import get_feed
from tests.conftest import (
    CAT_A1,
    CAT_A2,
    CAT_B1,
    PUBLIC_BASE,
    SUBJECT_A1,
    TENANT_A,
    TENANT_B,
    TOPIC_A1,
    USER_1,
    USER_2,
)


def ids(page):
    return [item["id"] for item in page["items"]]


class TestVisibility:
    def test_processing_and_failed_videos_hidden(self, db_session, taxonomy, video_factory):
        ready = video_factory()
        video_factory(status=VideoStatus.PROCESSING)
        video_factory(status=VideoStatus.FAILED)
        assert ids(get_feed(db_session, TENANT_A)) == [ready.id]

    def test_tenant_isolation(self, db_session, client, auth_headers, taxonomy, video_factory):
        a = video_factory(tenant_id=TENANT_A)
        b = video_factory(tenant_id=TENANT_B, primary_category_id=CAT_B1)

        assert ids(get_feed(db_session, TENANT_A)) == [a.id]
        assert ids(get_feed(db_session, TENANT_B)) == [b.id]

        resp = client.get(f"/api/videos/{b.id}", headers=auth_headers(TENANT_A))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Video not found"}


class TestOrdering:
    def test_score_then_recency(self, db_session, taxonomy, video_factory):
        old_high = video_factory(ranking_score=5, created_offset=1)
        new_low = video_factory(ranking_score=1, created_offset=10)
        new_high = video_factory(ranking_score=5, created_offset=5)
        assert ids(get_feed(db_session, TENANT_A)) == [new_high.id, old_high.id, new_low.id]

    def test_cursor_pagination_walks_all_items_once(self, db_session, taxonomy, video_factory):
        created = [video_factory(ranking_score=s % 3) for s in range(7)]
        seen, cursor = [], None
        while True:
            page = get_feed(db_session, TENANT_A, limit=3, cursor=cursor)
            seen.extend(ids(page))
            if not page["hasMore"]:
                assert page["nextCursor"] is None
                break
            assert page["nextCursor"] == page["items"][-1]["id"]
            cursor = page["nextCursor"]
        assert sorted(seen) == sorted(v.id for v in created)
        assert len(seen) == 7

    def test_unknown_cursor_is_empty_last_page(self, db_session, taxonomy, video_factory):
        video_factory()
        page = get_feed(db_session, TENANT_A, cursor="missing")
        assert page == {"items": [], "nextCursor": None, "hasMore": False}

    def test_limit_clamped(self, db_session, taxonomy, video_factory):
        for _ in range(3):
            video_factory()
        assert len(get_feed(db_session, TENANT_A, limit=0)["items"]) == 3
        page = get_feed(db_session, TENANT_A, limit=2)
        assert len(page["items"]) == 2 and page["hasMore"]


class TestFilters:
    def test_or_within_dimension_and_across(self, db_session, taxonomy, video_factory):
        cooking_pasta = video_factory(topic_ids=[TOPIC_A1], subject_ids=[SUBJECT_A1])
        cooking_only = video_factory(topic_ids=[TOPIC_A1])
        video_factory()

        assert set(ids(get_feed(db_session, TENANT_A, topic_ids=[TOPIC_A1, "other"]))) == {
            cooking_pasta.id,
            cooking_only.id,
        }
        assert ids(get_feed(db_session, TENANT_A, topic_ids=[TOPIC_A1], subject_ids=[SUBJECT_A1])) == [
            cooking_pasta.id
        ]

    def test_category_matches_primary_or_linked(self, db_session, taxonomy, video_factory):
        primary = video_factory(primary_category_id=CAT_A2)
        linked = video_factory(primary_category_id=CAT_A1, category_ids=[CAT_A2])
        video_factory(primary_category_id=CAT_A1)
        assert set(ids(get_feed(db_session, TENANT_A, category_ids=[CAT_A2]))) == {primary.id, linked.id}

    def test_feed_endpoint_parses_comma_lists(self, client, taxonomy, video_factory):
        match = video_factory(topic_ids=[TOPIC_A1])
        video_factory()
        resp = client.get(f"/api/feed?app_id={TENANT_A}&topic_ids={TOPIC_A1},other")
        assert resp.status_code == 200
        assert ids(resp.json()) == [match.id]

        legacy = client.get("/api/feed", params={"category_id": CAT_A2}, headers={"X-App-Id": TENANT_A})
        assert ids(legacy.json()) == []


class TestItems:
    def test_item_shape_and_thumbnail_preference(self, db_session, taxonomy, video_factory):
        video = video_factory(thumbnails=["30", "15"], topic_ids=[TOPIC_A1])
        item = get_feed(db_session, TENANT_A)["items"][0]

        assert item["url"] == f"{PUBLIC_BASE}/videos/{TENANT_A}/{video.id}/source.mp4"
        assert item["mp4Url"] == item["url"]
        assert item["thumbnailUrl"].endswith("/15.png")
        assert set(item["thumbnailUrls"]) == {"15", "30"}
        assert item["category"] == {"id": CAT_A1, "name": "Comedy", "slug": "comedy"}
        assert item["topics"] == [{"id": TOPIC_A1, "name": "Cooking", "slug": "cooking"}]
        assert item["likeCount"] == 0
        assert "hasLiked" not in item

    def test_viewer_vote_flags(self, db_session, taxonomy, video_factory):
        video = video_factory()
        other = video_factory()
        db_session.add_all([
            Vote(tenant_id=TENANT_A, video_id=video.id, user_id=USER_1, vote_type=VoteType.LIKE.value),
            Vote(tenant_id=TENANT_A, video_id=video.id, user_id=USER_1, vote_type=VoteType.SUPER_VOTE.value),
            Vote(tenant_id=TENANT_A, video_id=other.id, user_id=USER_2, vote_type=VoteType.UP_VOTE.value),
        ])
        db_session.commit()

        items = {i["id"]: i for i in get_feed(db_session, TENANT_A, viewer_id=USER_1)["items"]}
        assert (items[video.id]["hasLiked"], items[video.id]["hasUpVoted"], items[video.id]["hasSuperVoted"]) == (
            True,
            False,
            True,
        )
        assert items[other.id]["hasUpVoted"] is False

    def test_token_tenant_wins_over_query(self, client, auth_headers, taxonomy, video_factory):
        a = video_factory(tenant_id=TENANT_A)
        video_factory(tenant_id=TENANT_B, primary_category_id=CAT_B1)
        resp = client.get(f"/api/feed?app_id={TENANT_B}", headers=auth_headers(TENANT_A, USER_1))
        assert ids(resp.json()) == [a.id]
        assert resp.json()["items"][0]["hasLiked"] is False

    def test_missing_tenant_is_400(self, client):
        assert client.get("/api/feed").status_code == 400
