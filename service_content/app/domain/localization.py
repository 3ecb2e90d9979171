"""
Locale and asset helpers applied to records returned by the content backend.
"""

from typing import Any, Dict, List, Optional

TRANSLATION_SKIP_FIELDS = frozenset({"id", "languages_code", "languages_id", "item", "metadata"})
ASSET_QUERY = "quality=80&format=webp&fit=cover"


def translations_deep(locale: str) -> Dict[str, Any]:
    """Backend ``deep`` parameter that limits translations to one locale."""
    return {"translations": {"_filter": {"languages_code": {"_eq": locale}}}}


def _translation_locale(translation: Dict[str, Any]) -> Optional[str]:
    code = translation.get("languages_code")
    if isinstance(code, dict):
        return code.get("code")
    return code


def apply_translation(record: Dict[str, Any], locale: str) -> Dict[str, Any]:
    """Merge the locale's translation fields over the base record."""
    translations = record.get("translations")
    if not isinstance(translations, list):
        return record

    match = next(
        (t for t in translations if isinstance(t, dict) and _translation_locale(t) == locale),
        None,
    )
    if match is None:
        return record

    merged = dict(record)
    for key, value in match.items():
        if key in TRANSLATION_SKIP_FIELDS or value is None:
            continue
        merged[key] = value
    return merged


def asset_url(value: Any, assets_base: str) -> Optional[str]:
    """URL of an image given a file id, an expanded file object or a URL."""
    if not value:
        return None
    if isinstance(value, dict):
        value = value.get("id")
        if not value:
            return None
    value = str(value)
    if value.startswith(("http://", "https://", "/")):
        return value
    return f"{assets_base}/{value}?{ASSET_QUERY}"


def resolve_assets(record: Dict[str, Any], assets_base: str) -> Dict[str, Any]:
    """Add ``*_url`` fields for image references and gallery items."""
    resolved = dict(record)
    for field in ("main_image", "featured_image", "image"):
        if field in resolved:
            resolved[f"{field}_url"] = asset_url(resolved[field], assets_base)

    gallery = resolved.get("gallery")
    if isinstance(gallery, list):
        resolved["gallery"] = [_resolve_gallery_item(item, assets_base) for item in gallery]
    return resolved


def _resolve_gallery_item(item: Any, assets_base: str) -> Any:
    if isinstance(item, dict):
        source = item.get("image", item.get("directus_files_id", item.get("id")))
        return {**item, "url": asset_url(source, assets_base)}
    return {"image": item, "url": asset_url(item, assets_base)}


def localize_record(record: Dict[str, Any], locale: str, assets_base: str) -> Dict[str, Any]:
    """Translation merge followed by asset resolution."""
    return resolve_assets(apply_translation(record, locale), assets_base)


def localize_records(records: List[Dict[str, Any]], locale: str, assets_base: str) -> List[Dict[str, Any]]:
    return [localize_record(record, locale, assets_base) for record in records]
