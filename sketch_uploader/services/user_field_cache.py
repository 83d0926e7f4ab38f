from __future__ import annotations

from sketch_uploader.domain.models import BoardUserField, copy_user_fields


class UserFieldCache:
    """Last confirmed user-field values per board identity.

    Entries are never evicted; a failed upload only clears validity so the
    dialog can still be pre-filled with the remembered values.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[BoardUserField]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def has(self, identity: str) -> bool:
        return bool(identity) and identity in self._entries

    def get(self, identity: str) -> list[BoardUserField] | None:
        if not identity:
            return None
        cached = self._entries.get(identity)
        if cached is None:
            return None
        return copy_user_fields(cached)

    def put(self, identity: str, values: list[BoardUserField]) -> None:
        if not identity:
            raise ValueError("Board identity is required to cache user fields.")
        self._entries[identity] = copy_user_fields(values)
