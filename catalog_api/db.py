from typing import Optional, Set
from enum import Enum

from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient, ContainerProxy
from azure.core.exceptions import AzureError
from azure.identity.aio import DefaultAzureCredential

from catalog_api import config
from catalog_api.logging_config import get_child_logger

logger = get_child_logger("db")


class ContainerType(str, Enum):
    USERS = "users"
    INVENTORIES = "inventories"
    INVENTORY_ACCESSES = "inventoryaccesses"
    ITEMS = "items"
    DISCUSSION_POSTS = "discussionposts"
    LIKES = "likes"
    COUNTERS = "counters"


PARTITION_KEYS = {
    ContainerType.USERS: "/id",
    ContainerType.INVENTORIES: "/id",
    ContainerType.INVENTORY_ACCESSES: "/inventoryId",
    ContainerType.ITEMS: "/id",
    ContainerType.DISCUSSION_POSTS: "/inventoryId",
    ContainerType.LIKES: "/itemId",
    ContainerType.COUNTERS: "/id",
}

# One grant per (inventoryId, userId): unique keys are scoped to a partition.
UNIQUE_KEYS = {
    ContainerType.INVENTORY_ACCESSES: ["/userId"],
}

# Multi-field ORDER BY needs a composite index in Cosmos DB.
COMPOSITE_INDEXES = {
    ContainerType.INVENTORIES: [
        [{"path": "/updatedAt", "order": "descending"}, {"path": "/id", "order": "descending"}],
    ],
    ContainerType.ITEMS: [
        [{"path": "/updatedAt", "order": "descending"}, {"path": "/id", "order": "descending"}],
    ],
    ContainerType.DISCUSSION_POSTS: [
        [{"path": "/createdAt", "order": "ascending"}, {"path": "/id", "order": "ascending"}],
    ],
    ContainerType.USERS: [
        [{"path": "/createdAt", "order": "descending"}, {"path": "/id", "order": "descending"}],
    ],
}

_client: Optional[CosmosClient] = None
_credential: Optional[DefaultAzureCredential] = None
# containers already provisioned by this process
_ensured: Set[ContainerType] = set()


async def _ensure_client() -> CosmosClient:
    global _client, _credential
    if _client is None:
        if not config.COSMOSDB_ENDPOINT:
            raise ValueError("COSMOSDB_ENDPOINT environment variable must be set")
        if config.COSMOSDB_KEY:
            logger.info("Creating CosmosDB client with master key")
            _client = CosmosClient(config.COSMOSDB_ENDPOINT, credential=config.COSMOSDB_KEY)
        else:
            logger.info("Creating CosmosDB client with DefaultAzureCredential")
            _credential = DefaultAzureCredential()
            _client = CosmosClient(config.COSMOSDB_ENDPOINT, _credential)
    return _client


def container_name(container_type: ContainerType) -> str:
    name = config.CONTAINERS.get(container_type.value)
    if not name:
        raise ValueError(
            f"Container '{container_type}' not configured. "
            f"Valid options: {list(config.CONTAINERS.keys())}"
        )
    return name


async def get_container(container_type: ContainerType) -> ContainerProxy:
    client = await _ensure_client()
    database = client.get_database_client(config.DATABASE_NAME)
    return database.get_container_client(container_name(container_type))


async def ensure_container(container_type: ContainerType) -> ContainerProxy:
    """
    Create the container with its partition key, unique keys and composite
    indexes unless it already exists. Safe to call repeatedly; after the first
    success in this process only the container client is returned.
    """
    if container_type in _ensured:
        return await get_container(container_type)
    client = await _ensure_client()
    database = await client.create_database_if_not_exists(id=config.DATABASE_NAME)

    kwargs = {}
    if container_type in UNIQUE_KEYS:
        kwargs["unique_key_policy"] = {
            "uniqueKeys": [{"paths": UNIQUE_KEYS[container_type]}]
        }
    if container_type in COMPOSITE_INDEXES:
        kwargs["indexing_policy"] = {
            "indexingMode": "consistent",
            "includedPaths": [{"path": "/*"}],
            "compositeIndexes": COMPOSITE_INDEXES[container_type],
        }

    container = await database.create_container_if_not_exists(
        id=container_name(container_type),
        partition_key=PartitionKey(path=PARTITION_KEYS[container_type]),
        **kwargs,
    )
    _ensured.add(container_type)
    return container


async def ensure_containers() -> None:
    """Provision every container at startup. Failures are logged, not raised."""
    for container_type in ContainerType:
        try:
            await ensure_container(container_type)
        except (AzureError, ValueError) as e:
            logger.warning(
                "Could not ensure container",
                extra={"container": container_type.value, "error": str(e)},
            )


async def close_client() -> None:
    global _client, _credential
    if _client is not None:
        await _client.close()
        _client = None
    if _credential is not None:
        await _credential.close()
        _credential = None
