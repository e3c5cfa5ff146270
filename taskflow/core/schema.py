"""PocketBase schema management (code-first approach)."""

import logging
from typing import Any

import httpx

from taskflow.core.config import Constants, settings


logger = logging.getLogger(__name__)


# Collections managed by this module; "users" is PocketBase's built-in auth collection
COLLECTIONS = [Constants.TASKS_COLLECTION]


def _get_collection_schema(*, collection_name: str, users_collection_id: str) -> dict[str, Any]:
    """Get the expected schema for a collection.

    Note: PocketBase v0.23+ only stamps created/updated when the collection
    declares them as autodate fields, and relation fields need the real
    collection id, not its name.
    """
    schemas = {
        Constants.TASKS_COLLECTION: {
            "name": Constants.TASKS_COLLECTION,
            "type": "base",
            "system": False,
            # API Rules: owners only
            "listRule": "user_id = @request.auth.id",
            "viewRule": "user_id = @request.auth.id",
            "createRule": "@request.auth.id != '' && @request.body.user_id = @request.auth.id",
            "updateRule": "user_id = @request.auth.id",
            "deleteRule": "user_id = @request.auth.id",
            "fields": [
                {
                    "name": "title",
                    "type": "text",
                    "required": True,
                    "min": Constants.TITLE_MIN_LENGTH,
                    "max": Constants.TITLE_MAX_LENGTH,
                },
                {"name": "description", "type": "text", "required": False, "max": Constants.DESCRIPTION_MAX_LENGTH},
                {
                    "name": "status",
                    "type": "select",
                    "required": True,
                    "values": ["pending", "in-progress", "completed"],
                    "maxSelect": 1,
                },
                {"name": "due_date", "type": "date", "required": True},
                {
                    "name": "user_id",
                    "type": "relation",
                    "required": True,
                    "collectionId": users_collection_id,
                    "maxSelect": 1,
                    "cascadeDelete": True,
                },
                {"name": "created", "type": "autodate", "onCreate": True, "onUpdate": False},
                {"name": "updated", "type": "autodate", "onCreate": True, "onUpdate": True},
            ],
            "indexes": [
                "CREATE INDEX idx_tasks_user_created ON tasks (user_id, created)",
                "CREATE INDEX idx_tasks_user_status ON tasks (user_id, status)",
                "CREATE INDEX idx_tasks_user_due ON tasks (user_id, due_date)",
            ],
        },
    }
    return schemas[collection_name]


async def _fetch_collection(*, client: httpx.AsyncClient, collection_name: str) -> dict[str, Any] | None:
    """Return the collection definition, or None when PocketBase has no such collection."""
    response = await client.get(f"/api/collections/{collection_name}")
    if response.status_code == httpx.codes.NOT_FOUND:
        return None
    response.raise_for_status()
    return response.json()


async def _create_collection(*, client: httpx.AsyncClient, schema: dict[str, Any]) -> None:
    response = await client.post("/api/collections", json=schema)
    response.raise_for_status()
    logger.info("Collection %s created", schema["name"])


_API_RULE_KEYS = ("listRule", "viewRule", "createRule", "updateRule", "deleteRule")


def _field_differs(desired: dict[str, Any], existing: dict[str, Any]) -> bool:
    """True when any option declared in ``desired`` has another value on the server.

    Server-side extras (field ids, ``system``, ``hidden``) are ignored.
    """
    return any(existing.get(key) != value for key, value in desired.items())


def _merge_fields(
    schema: dict[str, Any],
    current: dict[str, Any],
) -> tuple[list[dict[str, Any]], list[str], list[str]]:
    """Overlay the declared task fields on the collection's current fields.

    Fields the schema does not declare are kept as they are, in their
    original position. Declared fields missing on the server go last.

    Returns:
        Tuple of (merged_fields, fields_changed, fields_added).
    """
    declared = {f["name"]: f for f in schema.get("fields", [])}
    on_server = {f["name"]: f for f in current.get("fields", [])}

    merged = [declared.get(name, field) for name, field in on_server.items()]
    changed = [name for name, field in on_server.items() if name in declared and _field_differs(declared[name], field)]
    added = [name for name in declared if name not in on_server]
    merged.extend(declared[name] for name in added)

    return merged, changed, added


def _get_rules_to_update(schema: dict[str, Any], current: dict[str, Any]) -> dict[str, str | None]:
    """API rules whose declared value differs from the server's."""
    return {
        rule_key: schema[rule_key]
        for rule_key in _API_RULE_KEYS
        if rule_key in schema and schema[rule_key] != current.get(rule_key)
    }


async def _update_collection(
    *,
    client: httpx.AsyncClient,
    current: dict[str, Any],
    schema: dict[str, Any],
) -> None:
    """PATCH an existing collection to the declared shape, or do nothing if it already matches."""
    collection_name = current["name"]
    merged_fields, fields_changed, fields_added = _merge_fields(schema, current)
    rules_to_update = _get_rules_to_update(schema, current)
    existing_indexes = list(current.get("indexes") or [])
    new_indexes = [idx for idx in schema.get("indexes", []) if idx not in existing_indexes]

    if not (fields_changed or fields_added or rules_to_update or new_indexes):
        logger.info("Collection %s already matches the task schema", collection_name)
        return

    update_payload: dict[str, Any] = {"fields": merged_fields, **rules_to_update}
    if new_indexes:
        update_payload["indexes"] = existing_indexes + new_indexes

    response = await client.patch(f"/api/collections/{collection_name}", json=update_payload)
    response.raise_for_status()

    logger.info(
        "Collection %s updated",
        collection_name,
        extra={
            "fields_changed": fields_changed,
            "fields_added": fields_added,
            "rules_updated": list(rules_to_update),
            "indexes_added": new_indexes,
        },
    )


async def _authenticate_superuser(*, client: httpx.AsyncClient, admin_email: str, admin_password: str) -> str:
    """Authenticate as a PocketBase superuser and return the auth token."""
    response = await client.post(
        "/api/collections/_superusers/auth-with-password",
        json={"identity": admin_email, "password": admin_password},
    )
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("Failed to authenticate as admin: %s", e)
        raise
    logger.info("Successfully authenticated as admin")
    return response.json()["token"]


async def sync_schema(
    *,
    admin_email: str,
    admin_password: str,
    pocketbase_url: str | None = None,
) -> None:
    """Sync the PocketBase schema with the task model (idempotent).

    Args:
        admin_email: Superuser email for authentication.
        admin_password: Superuser password for authentication.
        pocketbase_url: Optional PocketBase URL. If not provided, uses settings.pocketbase_url.
    """
    logger.info("Starting PocketBase schema sync...")

    url = pocketbase_url or settings.pocketbase_url
    if not url:
        raise ValueError("PocketBase URL not configured. Set POCKETBASE_URL.")

    async with httpx.AsyncClient(base_url=url, timeout=30.0) as http_client:
        token = await _authenticate_superuser(
            client=http_client,
            admin_email=admin_email,
            admin_password=admin_password,
        )
        http_client.headers["Authorization"] = f"Bearer {token}"

        users = await _fetch_collection(client=http_client, collection_name=Constants.USERS_COLLECTION)
        if users is None:
            raise ValueError(f"PocketBase has no {Constants.USERS_COLLECTION!r} auth collection")

        for collection_name in COLLECTIONS:
            schema = _get_collection_schema(collection_name=collection_name, users_collection_id=users["id"])
            current = await _fetch_collection(client=http_client, collection_name=collection_name)

            if current is None:
                await _create_collection(client=http_client, schema=schema)
            else:
                await _update_collection(client=http_client, current=current, schema=schema)

    logger.info("PocketBase schema sync complete")
