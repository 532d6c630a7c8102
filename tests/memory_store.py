"""In-memory stand-in for ``DocumentCollection``, evaluating the same predicates."""
import copy
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from catalog_api.collection import Store
from catalog_api.db import PARTITION_KEYS, UNIQUE_KEYS, ContainerType
from catalog_api.exceptions import (
    DatabaseError,
    DocumentExistsError,
    DocumentNotFoundError,
    PreconditionFailedError,
)
from catalog_api.query import (
    LEGACY_USER_KEYS,
    AnyOf,
    ArrayContains,
    Eq,
    Gt,
    In,
    LegacyGrantMention,
    Ne,
    OrderBy,
    TextSearch,
)

MISSING = object()


def resolve(doc: Dict[str, Any], field: str) -> Any:
    value: Any = doc
    for part in field.replace("/", ".").split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


def _contains(value: Any, text: str) -> bool:
    return isinstance(value, str) and text.lower() in value.lower()


def _mentions(entries: Any, uid: str) -> bool:
    if not isinstance(entries, list):
        return False
    return any(
        isinstance(e, dict) and any(e.get(k) is not None and str(e[k]) == uid for k in LEGACY_USER_KEYS)
        for e in entries
    )


def matches(doc: Dict[str, Any], predicate: Any) -> bool:
    if isinstance(predicate, Eq):
        value = resolve(doc, predicate.field)
        if predicate.value is None:
            return value is MISSING or value is None
        return value is not MISSING and value == predicate.value
    if isinstance(predicate, Ne):
        value = resolve(doc, predicate.field)
        return value is not MISSING and value != predicate.value
    if isinstance(predicate, Gt):
        value = resolve(doc, predicate.field)
        try:
            return value is not MISSING and value is not None and value > predicate.value
        except TypeError:
            return False
    if isinstance(predicate, In):
        return resolve(doc, predicate.field) in predicate.values
    if isinstance(predicate, ArrayContains):
        value = resolve(doc, predicate.field)
        return isinstance(value, list) and predicate.value in value
    if isinstance(predicate, TextSearch):
        if any(_contains(resolve(doc, f), predicate.text) for f in predicate.fields):
            return True
        for f in predicate.array_fields:
            value = resolve(doc, f)
            if isinstance(value, list) and any(_contains(v, predicate.text) for v in value):
                return True
        return False
    if isinstance(predicate, LegacyGrantMention):
        access = doc.get("access")
        uid = predicate.user_id
        if isinstance(access, dict):
            return uid in access or _mentions(access.get("users"), uid)
        return _mentions(access, uid)
    if isinstance(predicate, AnyOf):
        return any(matches(doc, p) for p in predicate.filters)
    raise TypeError(f"Unsupported filter predicate: {predicate!r}")


class MemoryCollection:
    def __init__(self, container_type: ContainerType):
        self.container_type = container_type
        self.name = container_type.value
        self.partition_field = PARTITION_KEYS[container_type].lstrip("/")
        self.unique_keys = [k.lstrip("/") for k in UNIQUE_KEYS.get(container_type, [])]
        self.docs: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.ensure_calls = 0

    # seeding and inspection helpers for tests

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(doc)
        stored["_etag"] = uuid.uuid4().hex
        self.docs[self._key(stored["id"], stored[self.partition_field])] = stored
        return copy.deepcopy(stored)

    def all(self) -> List[Dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.docs.values()]

    def _key(self, doc_id: Any, partition_key: Any) -> Tuple[str, str]:
        return str(partition_key), str(doc_id)

    def _check_unique(self, doc: Dict[str, Any]) -> None:
        pk = str(doc[self.partition_field])
        for key in self.unique_keys:
            for (other_pk, other_id), other in self.docs.items():
                if other_pk == pk and other_id != str(doc["id"]) and other.get(key) == doc.get(key):
                    raise DocumentExistsError(f"{self.name} unique key {key} violated")

    # DocumentCollection interface

    async def get(self, doc_id: str, partition_key: Any = None) -> Optional[Dict[str, Any]]:
        pk = doc_id if partition_key is None else partition_key
        doc = self.docs.get(self._key(doc_id, pk))
        return copy.deepcopy(doc) if doc is not None else None

    def _select(self, filters: Sequence[Any], partition_key: Any) -> List[Dict[str, Any]]:
        docs = [
            d for (pk, _), d in self.docs.items()
            if partition_key is None or pk == str(partition_key)
        ]
        return [d for d in docs if all(matches(d, p) for p in filters)]

    async def query(
        self,
        filters: Sequence[Any] = (),
        order_by: Sequence[OrderBy] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        partition_key: Any = None,
    ) -> List[Dict[str, Any]]:
        docs = self._select(filters, partition_key)
        for order in reversed(list(order_by)):
            present = [d for d in docs if resolve(d, order.field) is not MISSING]
            absent = [d for d in docs if resolve(d, order.field) is MISSING]
            present.sort(key=lambda d: resolve(d, order.field), reverse=order.descending)
            docs = absent + present if not order.descending else present + absent
        if limit is not None:
            start = int(offset or 0)
            docs = docs[start:start + int(limit)]
        return [copy.deepcopy(d) for d in docs]

    async def count(self, filters: Sequence[Any] = (), partition_key: Any = None) -> int:
        return len(self._select(filters, partition_key))

    async def distinct_array_values(self, field_name: str) -> List[Any]:
        values = set()
        for doc in self.docs.values():
            array = resolve(doc, field_name)
            if isinstance(array, list):
                values.update(v.lower() for v in array if isinstance(v, str))
        return sorted(values)

    async def create(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        if self._key(doc["id"], doc[self.partition_field]) in self.docs:
            raise DocumentExistsError(f"{self.name}/{doc['id']} already exists")
        self._check_unique(doc)
        return self.insert(doc)

    async def upsert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        self._check_unique(doc)
        return self.insert(doc)

    async def replace(self, doc: Dict[str, Any], if_match: Optional[str] = None) -> Dict[str, Any]:
        key = self._key(doc["id"], doc[self.partition_field])
        current = self.docs.get(key)
        if current is None:
            raise DocumentNotFoundError(f"{self.name}/{doc['id']} not found")
        if if_match and current.get("_etag") != if_match:
            raise PreconditionFailedError(f"{self.name}/{doc['id']} precondition failed")
        body = {k: v for k, v in doc.items() if k != "_etag"}
        return self.insert(body)

    async def patch(
        self,
        doc_id: str,
        partition_key: Any = None,
        set_fields: Optional[Dict[str, Any]] = None,
        increment: Optional[Dict[str, int]] = None,
        remove: Sequence[str] = (),
        expected: Optional[Dict[str, Any]] = None,
        if_match: Optional[str] = None,
    ) -> Dict[str, Any]:
        pk = doc_id if partition_key is None else partition_key
        current = self.docs.get(self._key(doc_id, pk))
        if current is None:
            raise DocumentNotFoundError(f"{self.name}/{doc_id} not found")
        if expected and any(current.get(k, MISSING) != v for k, v in expected.items()):
            raise PreconditionFailedError(f"{self.name}/{doc_id} precondition failed")
        if if_match and current.get("_etag") != if_match:
            raise PreconditionFailedError(f"{self.name}/{doc_id} precondition failed")

        doc = copy.deepcopy(current)
        for key, value in (set_fields or {}).items():
            parent, leaf = self._parent(doc, key, doc_id)
            parent[leaf] = copy.deepcopy(value)
        for key, value in (increment or {}).items():
            parent, leaf = self._parent(doc, key, doc_id)
            parent[leaf] = parent.get(leaf, 0) + value
        for key in remove:
            doc.pop(key, None)
        return self.insert({k: v for k, v in doc.items() if k != "_etag"})

    def _parent(self, doc: Dict[str, Any], key: str, doc_id: str) -> Tuple[Dict[str, Any], str]:
        *parents, leaf = key.split("/")
        target = doc
        for part in parents:
            if not isinstance(target.get(part), dict):
                raise DatabaseError(f"{self.name}/{doc_id}: path /{key} does not exist")
            target = target[part]
        return target, leaf

    async def delete(self, doc_id: str, partition_key: Any = None) -> bool:
        pk = doc_id if partition_key is None else partition_key
        return self.docs.pop(self._key(doc_id, pk), None) is not None

    async def ensure(self) -> None:
        self.ensure_calls += 1


def memory_store() -> Store:
    return Store({ct.value: MemoryCollection(ct) for ct in ContainerType})
