"""
Base of every remote resource: identity, fetch state, uri composition and
field (de)serialization.
"""
from __future__ import annotations

import re
import weakref
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional

from domain.common.exceptions import (
    ParentResourceMissingException,
    ResourceNotFoundException,
    UsageException,
)


class FetchState(str, Enum):
    UNPERSISTED = "unpersisted"   # never sent, no remote id
    PERSISTED = "persisted"       # has a remote id, local fields may be stale
    FETCHED = "fetched"           # refreshed from the remote side at least once


def resource_id_from_url(url: str, id_string: str) -> str:
    """Extract an id like `s-chg-1` (id_string `chg`) from a resource url."""
    match = re.search(rf"/([sp]-{re.escape(id_string)}-[A-Za-z0-9]+)", url or "")
    if match is None:
        raise UsageException("Id not found!", details={"url": url, "id_string": id_string})
    return match.group(1)


def format_amount(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


class BaseResource:
    """A remote resource.

    `json_fields` maps attribute names to the api's json keys for the plain
    scalar fields; subclasses extend `expose` / `handle_response` for the rest.
    The parent (used for uri composition) is held weakly, ownership runs top-down.
    """

    resource_path: ClassVar[str] = ""
    json_fields: ClassVar[dict[str, str]] = {}
    # singletons like the keypair are fetched without an id
    id_required: ClassVar[bool] = True

    def __init__(self, id: Optional[str] = None) -> None:
        self._id: Optional[str] = None
        self._fetch_state = FetchState.UNPERSISTED
        self._parent_ref: Optional[weakref.ReferenceType] = None
        self.fetched_at: Optional[datetime] = None
        self.id = id

    @property
    def id(self) -> Optional[str]:
        return self._id

    @id.setter
    def id(self, value: Optional[str]) -> None:
        self._id = value or None
        if self._id and self._fetch_state is FetchState.UNPERSISTED:
            self._fetch_state = FetchState.PERSISTED

    @property
    def fetch_state(self) -> FetchState:
        return self._fetch_state

    @property
    def is_persisted(self) -> bool:
        return self._id is not None

    @property
    def needs_fetch(self) -> bool:
        """True once the resource has a remote id but was never fetched."""
        return self._fetch_state is FetchState.PERSISTED

    def mark_fetched(self, when: Optional[datetime] = None) -> None:
        self.fetched_at = when or datetime.now(timezone.utc)
        self._fetch_state = FetchState.FETCHED

    # parent / uri
    @property
    def parent(self) -> Optional[BaseResource]:
        return self._parent_ref() if self._parent_ref is not None else None

    def set_parent(self, parent: Optional[BaseResource]) -> None:
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    def requires_parent(self) -> bool:
        return False

    def get_resource_path(self) -> str:
        return self.resource_path

    def get_uri(self, append_id: bool = True) -> str:
        """Relative uri, e.g. `payments/s-pay-1/charges/s-chg-1/`."""
        parts: list[str] = []
        parent = self.parent
        if parent is not None:
            parts.append(parent.get_uri(append_id=True).strip("/"))
        elif self.requires_parent():
            raise ParentResourceMissingException(type(self).__name__)
        parts.append(self.get_resource_path().strip("/"))
        if append_id and self._id:
            parts.append(self._id)
        return "/".join(p for p in parts if p) + "/"

    # serialization
    def expose(self) -> dict[str, Any]:
        """Request payload; unset fields are left out."""
        payload: dict[str, Any] = {}
        for attr, key in self.json_fields.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if isinstance(value, Decimal):
                value = format_amount(value)
            elif isinstance(value, Enum):
                value = value.value
            payload[key] = value
        return payload

    def handle_response(self, data: dict[str, Any]) -> None:
        """Apply a successful response body onto this resource."""
        if data.get("id"):
            self.id = data["id"]
        for attr, key in self.json_fields.items():
            if key in data:
                setattr(self, attr, data[key])

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r})"


def find_by_id(resources, resource_id: Optional[str], resource: str = "resource", *, required: bool = False):
    """Linear lookup by id over an ordered collection."""
    for item in resources:
        if item.id is not None and item.id == resource_id:
            return item
    if required:
        raise ResourceNotFoundException(resource, resource_id)
    return None
