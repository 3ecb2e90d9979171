"""
CMS webhook handling: authentication and collection to tag mapping.
"""

import secrets
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from shared.errors import BadRequestError, UnauthorizedError

# Collections whose changes surface through another entity map onto its tag
COLLECTION_TO_ENTITY_TYPE: Dict[str, str] = {
    "hotels": "hotels",
    "destinations": "destinations",
    "categories": "categories",
    "pages": "pages",
    "translations": "translations",
    "rooms": "hotels",
}


class WebhookPayload(BaseModel):
    """Body posted by the CMS on item mutations."""

    model_config = ConfigDict(extra="allow")

    event: Optional[str] = None
    collection: Optional[str] = None
    item: Optional[Any] = None
    keys: Optional[List[Any]] = None

    def entity_type(self) -> str:
        """Tag to purge; unknown collections map to their own name."""
        return COLLECTION_TO_ENTITY_TYPE.get(self.collection, self.collection)

    def entity_id(self) -> Optional[str]:
        """Identifier of the changed item, for logging only."""
        if isinstance(self.item, dict):
            value = self.item.get("slug") or self.item.get("id")
            if value:
                return str(value)
        elif self.item not in (None, ""):
            return str(self.item)
        if self.keys:
            return str(self.keys[0])
        return None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]


def verify_token(provided: Optional[str], expected: str):
    """Raise UnauthorizedError unless provided matches expected."""
    if not provided or not expected:
        raise UnauthorizedError()
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        raise UnauthorizedError()


def parse_webhook_payload(body: Any) -> WebhookPayload:
    """Validate a decoded webhook body."""
    if not isinstance(body, dict):
        raise BadRequestError("Invalid webhook payload", code="INVALID_PAYLOAD")

    try:
        payload = WebhookPayload.model_validate(body)
    except ValidationError as exc:
        raise BadRequestError(
            "Invalid webhook payload", code="INVALID_PAYLOAD", details={"errors": exc.errors(include_url=False, include_context=False)}
        ) from exc
    if not payload.event or not payload.collection:
        raise BadRequestError("Invalid webhook payload", code="INVALID_PAYLOAD")
    return payload
