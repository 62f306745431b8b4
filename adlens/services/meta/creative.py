"""
Ad creative field extraction.

Creative text, headline and destination URL live in different places
depending on the ad format (single image, video, dynamic asset feed). Each
lookup is an ordered tuple of extractors; the first non-empty value wins.
"""
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

Extractor = Callable[[Dict[str, Any]], Any]

CREATIVE_FIELDS = (
    "id,body,title,image_url,thumbnail_url,link_url,object_url,"
    "object_story_spec,asset_feed_spec"
)


def _dig(obj: Any, path: Sequence[Any]) -> Any:
    for key in path:
        if isinstance(key, int):
            if not isinstance(obj, list) or len(obj) <= key:
                return None
            obj = obj[key]
        else:
            if not isinstance(obj, dict):
                return None
            obj = obj.get(key)
        if obj is None:
            return None
    return obj


def field_path(*path: Any) -> Extractor:
    """Extractor that walks dict keys / list indexes and returns the leaf."""
    def extract(creative: Dict[str, Any]) -> Any:
        return _dig(creative, path)

    extract.__name__ = ".".join(str(p) for p in path)
    return extract


TEXT_EXTRACTORS: Tuple[Extractor, ...] = (
    field_path("body"),
    field_path("object_story_spec", "link_data", "message"),
    field_path("object_story_spec", "video_data", "message"),
    field_path("asset_feed_spec", "bodies", 0, "text"),
    field_path("asset_feed_spec", "descriptions", 0, "text"),
    field_path("asset_feed_spec", "titles", 0, "text"),
)

HEADLINE_EXTRACTORS: Tuple[Extractor, ...] = (
    field_path("title"),
    field_path("object_story_spec", "link_data", "name"),
    field_path("asset_feed_spec", "titles", 0, "text"),
)

URL_EXTRACTORS: Tuple[Extractor, ...] = (
    field_path("object_story_spec", "link_data", "link"),
    field_path("object_story_spec", "link_data", "call_to_action", "value", "link"),
    field_path("object_story_spec", "video_data", "call_to_action", "value", "link"),
    field_path("asset_feed_spec", "link_urls", 0, "website_url"),
    field_path("link_url"),
    field_path("object_url"),
)

IMAGE_EXTRACTORS: Tuple[Extractor, ...] = (
    field_path("image_url"),
    field_path("thumbnail_url"),
    field_path("object_story_spec", "link_data", "picture"),
    field_path("object_story_spec", "video_data", "image_url"),
)


def first_value(creative: Optional[Dict[str, Any]], extractors: Sequence[Extractor]) -> Optional[str]:
    if not isinstance(creative, dict):
        return None
    for extractor in extractors:
        value = extractor(creative)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_text(creative: Optional[Dict[str, Any]]) -> Optional[str]:
    return first_value(creative, TEXT_EXTRACTORS)


def extract_headline(creative: Optional[Dict[str, Any]]) -> Optional[str]:
    return first_value(creative, HEADLINE_EXTRACTORS)


def extract_landing_url(creative: Optional[Dict[str, Any]]) -> Optional[str]:
    return first_value(creative, URL_EXTRACTORS)


def extract_image(creative: Optional[Dict[str, Any]]) -> Optional[str]:
    return first_value(creative, IMAGE_EXTRACTORS)
