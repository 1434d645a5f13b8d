"""Store directory backed by the key-value store."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from core.storage.kv_store import JsonKeyValueStore
from core.stores.models import Store, StoreChanges, StoreDraft
from core.utils.errors import StoreNotFoundError

STORES_KEY = "stores"


class StoreDirectory:
    """CRUD operations over the ``stores`` list."""

    def __init__(self, kv: JsonKeyValueStore) -> None:
        self._kv = kv

    def list_all(self) -> list[Store]:
        """Return stores ordered by group, then name."""

        stores = self._load()
        return sorted(stores, key=lambda store: (store.group, store.name))

    def get(self, store_id: str) -> Store:
        for store in self._load():
            if store.id == store_id:
                return store
        raise StoreNotFoundError(store_id)

    def create(self, draft: StoreDraft) -> Store:
        stores = self._load()
        store = Store(id=uuid.uuid4().hex, **draft.model_dump())
        stores.append(store)
        self._save(stores)
        return store

    def import_many(self, drafts: Iterable[StoreDraft]) -> list[Store]:
        stores = self._load()
        created = [Store(id=uuid.uuid4().hex, **draft.model_dump()) for draft in drafts]
        stores.extend(created)
        self._save(stores)
        return created

    def update(self, store_id: str, changes: StoreChanges) -> Store:
        """Merge explicitly set fields into an existing store; the id never changes."""

        stores = self._load()
        for index, store in enumerate(stores):
            if store.id != store_id:
                continue
            merged = store.model_dump()
            merged.update(changes.model_dump(exclude_unset=True))
            merged["id"] = store_id
            updated = Store.model_validate(merged)
            stores[index] = updated
            self._save(stores)
            return updated
        raise StoreNotFoundError(store_id)

    def delete(self, store_id: str) -> None:
        stores = self._load()
        remaining = [store for store in stores if store.id != store_id]
        if len(remaining) == len(stores):
            raise StoreNotFoundError(store_id)
        self._save(remaining)

    def _load(self) -> list[Store]:
        raw = self._kv.get(STORES_KEY, [])
        return [Store.model_validate(item) for item in raw]

    def _save(self, stores: list[Store]) -> None:
        self._kv.set(STORES_KEY, [store.model_dump(mode="json") for store in stores])
