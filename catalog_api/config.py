import os

# Cosmos DB
COSMOSDB_ENDPOINT = os.environ.get("COSMOSDB_ENDPOINT", "")
COSMOSDB_KEY = os.environ.get("COSMOSDB_KEY")  # optional master key, else DefaultAzureCredential
DATABASE_NAME = os.environ.get("COSMOSDB_DATABASE", "catalog")

CONTAINERS = {
    "users": os.environ.get("COSMOSDB_CONTAINER_USERS", "users"),
    "inventories": os.environ.get("COSMOSDB_CONTAINER_INVENTORIES", "inventories"),
    "inventoryaccesses": os.environ.get("COSMOSDB_CONTAINER_ACCESSES", "inventoryaccesses"),
    "items": os.environ.get("COSMOSDB_CONTAINER_ITEMS", "items"),
    "discussionposts": os.environ.get("COSMOSDB_CONTAINER_DISCUSSION", "discussionposts"),
    "likes": os.environ.get("COSMOSDB_CONTAINER_LIKES", "likes"),
    "counters": os.environ.get("COSMOSDB_CONTAINER_COUNTERS", "counters"),
}

# Auth / JWT
AUTH_SECRET_KEY = os.environ.get("AUTH_SECRET_KEY", "change-me")
AUTH_ALGORITHM = os.environ.get("AUTH_ALGORITHM", "HS256")
AUTH_ACCESS_TTL_DAYS = int(os.environ.get("AUTH_ACCESS_TTL_DAYS", "7"))
AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "token")

# Application
APP_NAME = os.environ.get("APP_NAME", "catalog-api")
APP_ENV = os.environ.get("APP_ENV", "development")
MAX_BODY_BYTES = int(os.environ.get("MAX_BODY_BYTES", str(1024 * 1024)))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Support tickets / uploads
UPLOAD_PROVIDER = os.environ.get("UPLOAD_PROVIDER", "dropbox").lower()
DROPBOX_ACCESS_TOKEN = os.environ.get("DROPBOX_ACCESS_TOKEN")
DROPBOX_FOLDER = os.environ.get("DROPBOX_FOLDER", "/SupportTickets")
ONEDRIVE_ACCESS_TOKEN = os.environ.get("ONEDRIVE_ACCESS_TOKEN")
ONEDRIVE_FOLDER = os.environ.get("ONEDRIVE_FOLDER", "SupportTickets")
ONEDRIVE_DRIVE = os.environ.get("ONEDRIVE_DRIVE", "me")
SUPPORT_ADMIN_EMAILS = [
    email.strip()
    for email in os.environ.get("SUPPORT_ADMIN_EMAILS", "").split(",")
    if email.strip()
]


def is_production() -> bool:
    return APP_ENV.lower() == "production"
