from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from gallery.core.config import settings
from gallery.models.media import MediaItem, MediaTag, MediaType
from gallery.schema.media import BulkUpdateItem, MediaCreate, MediaMetadata, MediaUpdate
from gallery.services import media_service
from gallery.services.search_query import build_search_query
from gallery.tests.utils import add_media


@pytest.mark.asyncio
async def test_structured_search_orders_newest_first_and_hides_inactive(session):
    old = await add_media(session, "Old", minutes=1)
    new = await add_media(session, "New", minutes=3)
    await add_media(session, "Hidden", minutes=5, is_active=False)

    page = await media_service.search_media(session, build_search_query())

    assert [item.id for item in page.items] == [new.id, old.id]
    assert page.pagination.total == 2
    assert page.pagination.total_pages == 1


@pytest.mark.asyncio
async def test_second_page_of_three_records(session):
    await add_media(session, "First", minutes=1)
    middle = await add_media(session, "Second", minutes=2)
    await add_media(session, "Third", minutes=3)

    page = await media_service.search_media(session, build_search_query(page=2, limit=1))

    assert [item.id for item in page.items] == [middle.id]
    assert page.pagination.page == 2
    assert page.pagination.limit == 1
    assert page.pagination.total == 3
    assert page.pagination.total_pages == 3
    assert page.pagination.has_more is True


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty_but_keeps_total(session):
    await add_media(session, "Only")

    page = await media_service.search_media(session, build_search_query(page=5, limit=10))

    assert page.items == []
    assert page.pagination.total == 1
    assert page.pagination.total_pages == 1


@pytest.mark.asyncio
async def test_empty_collection_reports_zero_pages(session):
    page = await media_service.search_media(session, build_search_query())
    assert page.items == []
    assert page.pagination.total == 0
    assert page.pagination.total_pages == 0


@pytest.mark.asyncio
async def test_tag_filter_matches_any_requested_tag(session):
    beach = await add_media(session, "Beach", tags=["ocean"], minutes=1)
    peak = await add_media(session, "Peak", tags=["mountains"], minutes=2)
    await add_media(session, "Street", tags=["city"], minutes=3)

    page = await media_service.search_media(session, build_search_query(tags=["ocean", "mountains"]))

    assert {item.id for item in page.items} == {beach.id, peak.id}
    assert page.pagination.total == 2


@pytest.mark.asyncio
async def test_kind_and_tag_filters_combine(session):
    clip = await add_media(session, "Clip", media_type=MediaType.VIDEO, tags=["ocean"])
    await add_media(session, "Still", media_type=MediaType.IMAGE, tags=["ocean"])
    await add_media(session, "Other clip", media_type=MediaType.VIDEO, tags=["city"])

    page = await media_service.search_media(
        session, build_search_query(media_type="video", tags=["ocean"])
    )

    assert [item.id for item in page.items] == [clip.id]


@pytest.mark.asyncio
async def test_text_search_ranks_title_above_tags_above_description(session):
    described = await add_media(session, "Harbor", description="sunset over the water", minutes=3)
    tagged = await add_media(session, "Harbor lights", tags=["sunset"], minutes=2)
    titled = await add_media(session, "Sunset ridge", minutes=1)
    await add_media(session, "Unrelated", description="morning fog")

    page = await media_service.search_media(session, build_search_query("sunset"))

    assert [item.id for item in page.items] == [titled.id, tagged.id, described.id]
    assert page.pagination.total == 3


@pytest.mark.asyncio
async def test_text_search_honours_explicit_title_sort(session):
    await add_media(session, "beta sunset")
    await add_media(session, "Alpha sunset")
    await add_media(session, "Gamma", description="a sunset")

    page = await media_service.search_media(
        session, build_search_query("sunset", sort_by="title", sort_order="asc")
    )

    assert [item.title for item in page.items] == ["Alpha sunset", "beta sunset", "Gamma"]


@pytest.mark.asyncio
async def test_equal_sort_keys_break_ties_by_id(session):
    second = await add_media(session, "Same", media_id="b" * 32)
    first = await add_media(session, "Same", media_id="a" * 32)

    page = await media_service.search_media(session, build_search_query(sort_by="title"))

    assert [item.id for item in page.items] == [first.id, second.id]


@pytest.mark.asyncio
async def test_include_inactive_returns_soft_deleted(session):
    hidden = await add_media(session, "Hidden", is_active=False)

    page = await media_service.search_media(session, build_search_query(), include_inactive=True)

    assert [item.id for item in page.items] == [hidden.id]


@pytest.mark.asyncio
async def test_limit_is_clamped_to_configured_maximum(session, monkeypatch):
    monkeypatch.setattr(settings, "search_max_limit", 2)
    for minute in range(3):
        await add_media(session, f"Item {minute}", minutes=minute)

    page = await media_service.search_media(session, build_search_query(limit=50))

    assert len(page.items) == 2
    assert page.pagination.limit == 2
    assert page.pagination.total_pages == 2


@pytest.mark.asyncio
async def test_storage_errors_become_retrieval_failures(session, monkeypatch):
    async def _broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "scalar", _broken)

    with pytest.raises(media_service.RetrievalFailure):
        await media_service.search_media(session, build_search_query())


def test_score_relevance_short_queries_match_substrings():
    assert media_service.score_relevance("ca", title="City cat", description=None, tags=[]) == 3.0
    assert media_service.score_relevance("cat", title="Category", description=None, tags=[]) == 0.0
    assert media_service.score_relevance("cat", title="Cat nap", description="cat", tags=["cat"]) == 6.0


def test_score_relevance_folds_case_and_accents():
    assert media_service.score_relevance("CAFE", title="Café corner", description=None, tags=[]) == 3.0


@pytest.mark.asyncio
async def test_create_media_normalizes_tags_and_drops_duration_for_images(session):
    payload = MediaCreate(
        title="  Skyline  ",
        url="https://cdn.example.com/skyline.jpg",
        thumbnail_url="https://cdn.example.com/thumbs/skyline.jpg",
        media_type=MediaType.IMAGE,
        tags=["City", "night", "city "],
        media_metadata=MediaMetadata(width=10, height=20, duration=5),
    )

    media = await media_service.create_media(session, payload)

    assert media.title == "Skyline"
    assert media.tags == ["city", "night"]
    assert media.is_active is True
    assert media.media_metadata["width"] == 10
    assert media.duration_seconds is None


@pytest.mark.asyncio
async def test_update_media_replaces_tags_and_bumps_updated_at(session):
    media = await add_media(session, "Lake", tags=["water", "blue"])
    before = media.updated_at

    updated = await media_service.update_media(
        session, media.id, MediaUpdate(title="Lake at dawn", tags=["blue", "dawn"])
    )

    assert updated is not None
    assert updated.title == "Lake at dawn"
    assert updated.tags == ["blue", "dawn"]
    assert media_service._naive_utc(updated.updated_at) > media_service._naive_utc(before)


@pytest.mark.asyncio
async def test_update_unknown_media_returns_none(session):
    assert await media_service.update_media(session, "missing", MediaUpdate(title="x")) is None


@pytest.mark.asyncio
async def test_soft_delete_and_restore(session):
    media = await add_media(session, "Fleeting")

    deleted = await media_service.soft_delete_media(session, media.id)
    assert deleted is not None and deleted.is_active is False
    assert await media_service.get_media(session, media.id) is None
    assert await media_service.get_media(session, media.id, include_inactive=True) is not None
    assert (await media_service.search_media(session, build_search_query())).items == []

    restored = await media_service.restore_media(session, media.id)
    assert restored is not None and restored.is_active is True
    assert await media_service.get_media(session, media.id) is not None


@pytest.mark.asyncio
async def test_delete_media_removes_record(session):
    media = await add_media(session, "Gone", tags=["temp"])

    assert await media_service.delete_media(session, media.id) is True
    assert await media_service.get_media(session, media.id, include_inactive=True) is None
    assert await media_service.delete_media(session, media.id) is False
    assert await media_service.suggest_tags(session) == []


@pytest.mark.asyncio
async def test_bulk_create_and_bulk_update(session):
    created = await media_service.bulk_create_media(
        session,
        [
            MediaCreate(
                title=f"Batch {index}",
                url=f"https://cdn.example.com/{index}.jpg",
                thumbnail_url=f"https://cdn.example.com/thumbs/{index}.jpg",
                media_type=MediaType.IMAGE,
            )
            for index in range(2)
        ],
    )
    assert len(created) == 2

    result = await media_service.bulk_update_media(
        session,
        [
            BulkUpdateItem(id=created[0].id, data=MediaUpdate(title="Renamed")),
            BulkUpdateItem(id="missing", data=MediaUpdate(title="Nope")),
        ],
    )

    assert result.success == 1
    assert result.failed == 1
    refreshed = await media_service.get_media(session, created[0].id)
    assert refreshed is not None and refreshed.title == "Renamed"


@pytest.mark.asyncio
async def test_suggest_tags_orders_by_usage_and_ignores_inactive(session):
    await add_media(session, "One", tags=["nature", "sunset"])
    await add_media(session, "Two", tags=["nature", "night"])
    await add_media(session, "Three", tags=["nature", "sunrise"])
    await add_media(session, "Hidden", tags=["secret"], is_active=False)

    assert await media_service.suggest_tags(session, limit=2) == ["nature", "night"]
    assert await media_service.suggest_tags(session, "SUN") == ["sunrise", "sunset"]
    assert "secret" not in await media_service.suggest_tags(session)


@pytest.mark.asyncio
async def test_related_media_shares_kind_or_tags(session):
    anchor = await add_media(session, "Anchor", media_type=MediaType.VIDEO, tags=["ocean"], minutes=1)
    same_tag = await add_media(session, "Still", media_type=MediaType.IMAGE, tags=["ocean"], minutes=2)
    same_kind = await add_media(session, "Clip", media_type=MediaType.VIDEO, minutes=3)
    await add_media(session, "Unrelated", media_type=MediaType.IMAGE, tags=["city"], minutes=4)
    await add_media(session, "Hidden", media_type=MediaType.VIDEO, is_active=False, minutes=5)

    related = await media_service.related_media(session, anchor)

    assert [item.id for item in related] == [same_kind.id, same_tag.id]


@pytest.mark.asyncio
async def test_find_by_tag_and_find_recent(session):
    older = await add_media(session, "Older", tags=["forest"], minutes=1)
    newer = await add_media(session, "Newer", minutes=2)

    by_tag = await media_service.find_by_tag(session, "Forest")
    assert [item.id for item in by_tag.items] == [older.id]

    recent = await media_service.find_recent(session, limit=1)
    assert [item.id for item in recent] == [newer.id]


def test_table_names_follow_model_names():
    assert MediaItem.__tablename__ == "media_items"
    assert MediaTag.__tablename__ == "media_tags"


@pytest.mark.asyncio
async def test_failed_delete_commit_raises_write_failure(session, monkeypatch):
    media = await add_media(session, "Keep")

    async def _broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "commit", _broken_commit)

    with pytest.raises(media_service.MediaWriteFailure, match="Media delete failed"):
        await media_service.delete_media(session, media.id)
    assert await media_service.get_media(session, media.id) is not None
