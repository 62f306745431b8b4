from adlens.services.meta.creative import (
    TEXT_EXTRACTORS,
    extract_headline,
    extract_image,
    extract_landing_url,
    extract_text,
)


def test_text_falls_back_through_creative_formats():
    assert extract_text({"body": "Primary", "object_story_spec": {"link_data": {"message": "Link"}}}) == "Primary"
    assert extract_text({"body": "  ", "object_story_spec": {"link_data": {"message": "Link"}}}) == "Link"
    assert extract_text({"object_story_spec": {"video_data": {"message": "Video"}}}) == "Video"
    assert extract_text({"asset_feed_spec": {"bodies": [{"text": "Dynamic"}, {"text": "Second"}]}}) == "Dynamic"
    assert extract_text({"asset_feed_spec": {"bodies": [], "descriptions": [{"text": "Desc"}]}}) == "Desc"
    assert extract_text({"asset_feed_spec": {"titles": [{"text": "Title only"}]}}) == "Title only"
    assert extract_text({"title": "Headline"}) is None
    assert extract_text(None) is None


def test_extractors_are_named_after_their_path():
    assert [e.__name__ for e in TEXT_EXTRACTORS][:2] == ["body", "object_story_spec.link_data.message"]


def test_headline_sources():
    assert extract_headline({"title": "Summer Sale"}) == "Summer Sale"
    assert extract_headline({"object_story_spec": {"link_data": {"name": "Link headline"}}}) == "Link headline"
    assert extract_headline({"asset_feed_spec": {"titles": [{"text": "Feed headline"}]}}) == "Feed headline"


def test_landing_url_resolution_order():
    assert extract_landing_url({
        "object_story_spec": {"link_data": {
            "link": "https://shop.example.com/a",
            "call_to_action": {"value": {"link": "https://shop.example.com/b"}},
        }},
        "link_url": "https://shop.example.com/c",
    }) == "https://shop.example.com/a"
    assert extract_landing_url({
        "object_story_spec": {"video_data": {"call_to_action": {"value": {"link": "https://shop.example.com/video"}}}},
    }) == "https://shop.example.com/video"
    assert extract_landing_url({
        "asset_feed_spec": {"link_urls": [{"website_url": "https://shop.example.com/feed"}]},
    }) == "https://shop.example.com/feed"
    assert extract_landing_url({"object_url": "https://shop.example.com/object"}) == "https://shop.example.com/object"
    assert extract_landing_url({}) is None


def test_image_lookup():
    assert extract_image({"thumbnail_url": "https://cdn/t.jpg"}) == "https://cdn/t.jpg"
    assert extract_image({"image_url": "https://cdn/i.jpg", "thumbnail_url": "https://cdn/t.jpg"}) == "https://cdn/i.jpg"
