"""
Test helper functions and factory methods for the content gateway.
"""

from typing import Any, Dict, List, Optional


class TestDataFactory:
    """Factory for creating test data."""

    __test__ = False

    @staticmethod
    def create_test_hotels() -> List[Dict[str, Any]]:
        """Create test hotels as stored in the content backend."""
        return [
            {
                "id": "h1",
                "slug": "alpine-lodge",
                "name": "Alpine Lodge",
                "status": "Published",
                "is_featured": True,
                "destination": "d1",
                "categories": ["mountain", "spa"],
                "main_image": "img-alpine",
                "date_created": "2024-03-01T00:00:00Z",
                "translations": [
                    {"languages_code": "de-DE", "name": "Alpenhütte", "description": "Ruhig gelegen"},
                    {"languages_code": "en-US", "name": "Alpine Lodge", "description": "Quiet retreat"},
                ],
            },
            {
                "id": "h2",
                "slug": "sea-house",
                "name": "Sea House",
                "status": "Published",
                "is_featured": False,
                "destination": "d2",
                "categories": ["beach"],
                "main_image": "img-sea",
                "date_created": "2024-02-01T00:00:00Z",
                "translations": [
                    {"languages_code": "de-DE", "name": "Meereshaus", "description": "Am Strand"},
                    {"languages_code": "en-US", "name": "Sea House", "description": "On the beach"},
                ],
            },
            {
                "id": "h3",
                "slug": "draft-villa",
                "name": "Draft Villa",
                "status": "Draft",
                "is_featured": False,
                "destination": "d1",
                "categories": [],
                "main_image": None,
                "date_created": "2024-04-01T00:00:00Z",
                "translations": [],
            },
        ]

    @staticmethod
    def create_test_rooms() -> List[Dict[str, Any]]:
        """Create test rooms."""
        return [
            {"id": "r1", "hotel": "h1", "name": "Suite", "status": "Published", "main_image": "img-suite", "translations": []},
            {"id": "r2", "hotel": "h1", "name": "Double", "status": "Published", "main_image": None, "translations": []},
            {"id": "r3", "hotel": "h2", "name": "Loft", "status": "Draft", "main_image": None, "translations": []},
        ]

    @staticmethod
    def create_test_destinations() -> List[Dict[str, Any]]:
        """Create test destinations."""
        return [
            {
                "id": "d1",
                "slug": "alps",
                "name": "Alps",
                "status": "Published",
                "main_image": "img-alps",
                "date_created": "2024-01-01T00:00:00Z",
                "translations": [{"languages_code": "de-DE", "name": "Alpen"}],
            },
            {
                "id": "d2",
                "slug": "coast",
                "name": "Coast",
                "status": "Published",
                "main_image": None,
                "date_created": "2024-01-02T00:00:00Z",
                "translations": [],
            },
        ]

    @staticmethod
    def create_test_categories() -> List[Dict[str, Any]]:
        """Create test categories."""
        return [
            {"id": "c1", "slug": "spa", "name": "Spa", "sort": 1, "image": None, "translations": []},
            {"id": "c2", "slug": "beach", "name": "Beach", "sort": 2, "image": None, "translations": []},
        ]

    @staticmethod
    def create_test_pages() -> List[Dict[str, Any]]:
        """Create test pages."""
        return [
            {"id": "p1", "slug": "about", "title": "About", "status": "Published", "sort": 1, "featured_image": None, "translations": []},
        ]

    @staticmethod
    def create_test_translations() -> List[Dict[str, Any]]:
        """Create UI string translations."""
        return [
            {"id": 1, "key": "nav.home", "value": "Startseite", "language": "de-DE"},
            {"id": 2, "key": "nav.home", "value": "Home", "language": "en-US"},
            {"id": 3, "key": "nav.hotels", "value": "Hotels", "language": "de-DE"},
        ]

    @staticmethod
    def create_test_collections() -> Dict[str, List[Dict[str, Any]]]:
        """All test collections keyed by collection name."""
        return {
            "hotels": TestDataFactory.create_test_hotels(),
            "rooms": TestDataFactory.create_test_rooms(),
            "destinations": TestDataFactory.create_test_destinations(),
            "categories": TestDataFactory.create_test_categories(),
            "pages": TestDataFactory.create_test_pages(),
            "translations": TestDataFactory.create_test_translations(),
        }

    @staticmethod
    def create_webhook_payload(
        collection: str,
        event: str = "items.update",
        item: Optional[Dict[str, Any]] = None,
        keys: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Create a CMS webhook payload."""
        payload: Dict[str, Any] = {"event": event, "collection": collection}
        if item is not None:
            payload["item"] = item
        if keys is not None:
            payload["keys"] = keys
        return payload

    @staticmethod
    def create_auth_headers(secret: str = "development_secret") -> Dict[str, str]:
        """Create webhook bearer headers."""
        return {"Authorization": f"Bearer {secret}"}
