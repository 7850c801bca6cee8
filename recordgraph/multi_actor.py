"""Actor identification for payloads that cross actor boundaries."""

from typing import Any, Optional

ACTOR_IDENTIFIER_FIELD_NAME = "actor_key"


def get_actor_identifier_from_payload(payload: Any) -> Optional[str]:
    """Return the payload's `actor_key` when it is a string, else None."""
    if isinstance(payload, dict):
        actor_identifier = payload.get(ACTOR_IDENTIFIER_FIELD_NAME)
        if isinstance(actor_identifier, str):
            return actor_identifier
    return None
