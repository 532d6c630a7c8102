import json
from typing import Any, Dict, List, Optional, Sequence

from azure.core import MatchConditions
from azure.cosmos.aio import ContainerProxy
from azure.cosmos.exceptions import CosmosHttpResponseError

from catalog_api.db import ContainerType, PARTITION_KEYS, ensure_container, get_container
from catalog_api.exceptions import (
    DatabaseError,
    DocumentExistsError,
    DocumentNotFoundError,
    PreconditionFailedError,
)
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.query import OrderBy, build_query, path

logger = get_child_logger("collection")


def _translate(e: CosmosHttpResponseError, action: str, collection: str, doc_id: Any = None):
    if e.status_code == 404:
        return DocumentNotFoundError(f"{collection}/{doc_id} not found")
    if e.status_code == 409:
        return DocumentExistsError(f"{collection}/{doc_id} already exists")
    if e.status_code == 412:
        return PreconditionFailedError(f"{collection}/{doc_id} precondition failed")
    logger.error(
        f"Cosmos DB error during {action}",
        extra={
            "collection": collection,
            "doc_id": doc_id,
            "status_code": e.status_code,
            "message": e.message,
        },
        exc_info=True,
    )
    return DatabaseError(
        f"Cosmos DB error during {action}: Status Code {e.status_code}, Message: {e.message}",
        original_exception=e,
    )


class DocumentCollection:
    """
    Query/update interface over one Cosmos DB container.

    Documents are plain dicts. The partition key value of a document is read
    from the field named by the container's partition key path.
    """

    def __init__(self, container: ContainerProxy, container_type: ContainerType):
        self.container = container
        self.container_type = container_type
        self.name = container_type.value
        self.partition_field = PARTITION_KEYS[container_type].lstrip("/")

    def partition_value(self, doc: Dict[str, Any]) -> Any:
        return doc[self.partition_field]

    async def get(self, doc_id: str, partition_key: Any = None) -> Optional[Dict[str, Any]]:
        """Read one document, or None when it does not exist."""
        pk = doc_id if partition_key is None else partition_key
        try:
            return await self.container.read_item(item=doc_id, partition_key=pk)
        except CosmosHttpResponseError as e:
            if e.status_code == 404:
                return None
            raise _translate(e, "read", self.name, doc_id) from e

    async def query(
        self,
        filters: Sequence[Any] = (),
        order_by: Sequence[OrderBy] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        partition_key: Any = None,
    ) -> List[Dict[str, Any]]:
        query, params = build_query(filters, order_by, offset, limit)
        with tracer.start_as_current_span("collection.query") as span:
            span.set_attribute("collection", self.name)
            logger.debug("Running query", extra={"collection": self.name, "query": query})
            try:
                kwargs = {"partition_key": partition_key} if partition_key is not None else {}
                iterator = self.container.query_items(query=query, parameters=params, **kwargs)
                docs = [doc async for doc in iterator]
                span.set_attribute("documents.count", len(docs))
                return docs
            except CosmosHttpResponseError as e:
                span.set_attribute("error", True)
                raise _translate(e, "query", self.name) from e

    async def count(self, filters: Sequence[Any] = (), partition_key: Any = None) -> int:
        query, params = build_query(filters, count=True)
        try:
            kwargs = {"partition_key": partition_key} if partition_key is not None else {}
            iterator = self.container.query_items(query=query, parameters=params, **kwargs)
            # Cross-partition COUNT may yield one partial count per partition.
            return sum([value async for value in iterator])
        except CosmosHttpResponseError as e:
            raise _translate(e, "count", self.name) from e

    async def distinct_array_values(self, field_name: str) -> List[Any]:
        """Distinct lower-cased string elements of an array field, ascending."""
        alias_path = path(field_name)
        query = (
            f"SELECT DISTINCT VALUE LOWER(t) FROM c JOIN t IN {alias_path}"
            " WHERE IS_STRING(t)"
        )
        try:
            iterator = self.container.query_items(query=query)
            values = [value async for value in iterator]
        except CosmosHttpResponseError as e:
            raise _translate(e, "distinct", self.name) from e
        return sorted(set(values))

    async def create(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await self.container.create_item(body=doc)
        except CosmosHttpResponseError as e:
            raise _translate(e, "create", self.name, doc.get("id")) from e

    async def upsert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await self.container.upsert_item(body=doc)
        except CosmosHttpResponseError as e:
            raise _translate(e, "upsert", self.name, doc.get("id")) from e

    async def replace(self, doc: Dict[str, Any], if_match: Optional[str] = None) -> Dict[str, Any]:
        """Replace a whole document, optionally only if its etag is unchanged."""
        kwargs = {}
        if if_match:
            kwargs = {"etag": if_match, "match_condition": MatchConditions.IfNotModified}
        try:
            return await self.container.replace_item(item=doc["id"], body=doc, **kwargs)
        except CosmosHttpResponseError as e:
            raise _translate(e, "replace", self.name, doc.get("id")) from e

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
        """
        Apply a partial update as a single server-side operation.

        Args:
            doc_id: Document id
            partition_key: Partition key value (defaults to ``doc_id``)
            set_fields: Top-level fields to set
            increment: Numeric fields to increment (``stats/itemsCount`` for
                nested ones), created when missing
            remove: Top-level fields to remove
            expected: Field values the stored document must have for the
                patch to apply (compare-and-swap)
            if_match: Etag the stored document must still carry

        Raises:
            DocumentNotFoundError: If the document doesn't exist
            PreconditionFailedError: If ``expected`` or ``if_match`` doesn't match
        """
        pk = doc_id if partition_key is None else partition_key
        operations = [
            {"op": "set", "path": f"/{key}", "value": value}
            for key, value in (set_fields or {}).items()
        ]
        operations += [
            {"op": "incr", "path": f"/{key}", "value": value}
            for key, value in (increment or {}).items()
        ]
        operations += [{"op": "remove", "path": f"/{key}"} for key in remove]

        kwargs = {}
        if expected:
            conditions = " AND ".join(
                f'c["{key}"] = {json.dumps(value)}' for key, value in expected.items()
            )
            kwargs["filter_predicate"] = f"FROM c WHERE {conditions}"
        if if_match:
            kwargs["etag"] = if_match
            kwargs["match_condition"] = MatchConditions.IfNotModified

        try:
            return await self.container.patch_item(
                item=doc_id, partition_key=pk, patch_operations=operations, **kwargs
            )
        except CosmosHttpResponseError as e:
            raise _translate(e, "patch", self.name, doc_id) from e

    async def delete(self, doc_id: str, partition_key: Any = None) -> bool:
        """Delete a document. Returns False when it was already gone."""
        pk = doc_id if partition_key is None else partition_key
        try:
            await self.container.delete_item(item=doc_id, partition_key=pk)
            return True
        except CosmosHttpResponseError as e:
            if e.status_code == 404:
                return False
            raise _translate(e, "delete", self.name, doc_id) from e

    async def ensure(self) -> None:
        """Idempotently (re)create the container with its unique-key policy."""
        try:
            await ensure_container(self.container_type)
        except CosmosHttpResponseError as e:
            raise _translate(e, "ensure", self.name) from e


class Store:
    """The document collections, keyed by collection name."""

    def __init__(self, collections: Dict[str, Any]):
        self._collections = collections

    def collection(self, name: str):
        return self._collections[name]

    @property
    def users(self):
        return self._collections[ContainerType.USERS.value]

    @property
    def inventories(self):
        return self._collections[ContainerType.INVENTORIES.value]

    @property
    def accesses(self):
        return self._collections[ContainerType.INVENTORY_ACCESSES.value]

    @property
    def items(self):
        return self._collections[ContainerType.ITEMS.value]

    @property
    def posts(self):
        return self._collections[ContainerType.DISCUSSION_POSTS.value]

    @property
    def likes(self):
        return self._collections[ContainerType.LIKES.value]

    @property
    def counters(self):
        return self._collections[ContainerType.COUNTERS.value]


async def get_store() -> Store:
    collections = {}
    for container_type in ContainerType:
        container = await get_container(container_type)
        collections[container_type.value] = DocumentCollection(container, container_type)
    return Store(collections)
