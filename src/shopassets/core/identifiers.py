"""Remote identifier value type."""

from __future__ import annotations

import re
from dataclasses import dataclass

from shopassets.core.errors import InvalidIdentifierError

GID_PREFIX = "gid://shopify/"

_RESOURCE_TYPE = re.compile(r"^[A-Z][A-Za-z]*$")
_LOCAL_ID = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True, slots=True)
class RemoteId:
    """A fully-qualified remote identifier (`gid://shopify/<Type>/<id>`)."""

    resource_type: str
    local_id: str

    def __post_init__(self) -> None:
        if not _RESOURCE_TYPE.match(self.resource_type or ""):
            raise InvalidIdentifierError(f"Invalid resource type: {self.resource_type!r}")
        if not _LOCAL_ID.match(self.local_id or ""):
            raise InvalidIdentifierError(f"Invalid identifier: {self.local_id!r}")

    @classmethod
    def parse(cls, value: str, resource_type: str) -> RemoteId:
        """Normalize a bare or qualified identifier for `resource_type`.

        Bare ids (`12345`) are qualified with the resource type. Qualified ids must
        name the same resource type; query strings on the gid are ignored.
        """

        if not isinstance(value, str):
            raise InvalidIdentifierError("Identifier must be a string.")
        candidate = value.strip()
        if not candidate:
            raise InvalidIdentifierError("Identifier must not be empty.")

        if not candidate.startswith("gid://"):
            return cls(resource_type=resource_type, local_id=candidate)

        if not candidate.startswith(GID_PREFIX):
            raise InvalidIdentifierError(f"Unsupported identifier namespace: {value!r}")
        remainder = candidate[len(GID_PREFIX):].split("?", 1)[0]
        parts = remainder.split("/")
        if len(parts) != 2:
            raise InvalidIdentifierError(f"Malformed identifier: {value!r}")
        found_type, local_id = parts
        if found_type != resource_type:
            raise InvalidIdentifierError(
                f"Identifier {value!r} is a {found_type or 'unknown'} id, expected {resource_type}"
            )
        return cls(resource_type=found_type, local_id=local_id)

    @property
    def gid(self) -> str:
        return f"{GID_PREFIX}{self.resource_type}/{self.local_id}"

    def __str__(self) -> str:
        return self.gid


__all__ = ["GID_PREFIX", "RemoteId"]
