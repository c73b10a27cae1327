"""
API routes for TagSoft.

Every route here requires the x-api-key header; the check runs as a router
dependency before any handler touches the store.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from ..access import AccessGate
from ..analytics import Aggregator
from ..store import EntityStore

logger = logging.getLogger(__name__)

NO_TOP_EVENT = "n/a"


# =============================================================================
# Dependencies
# =============================================================================


def get_store(request: Request) -> EntityStore:
    """Get entity store from app state."""
    return request.app.state.store


def get_aggregator(request: Request) -> Aggregator:
    """Get aggregator from app state."""
    return request.app.state.aggregator


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(None, alias="x-api-key"),
) -> None:
    """Reject the request unless x-api-key matches the configured secret."""
    gate: AccessGate = request.app.state.gate
    gate.authorize(x_api_key)


router = APIRouter(tags=["TagSoft"], dependencies=[Depends(require_api_key)])


# =============================================================================
# Request Models
# =============================================================================


class AccountUpsertRequest(BaseModel):
    """Create or update an account."""

    model_config = ConfigDict(extra="ignore")

    account_id: str | None = Field(None, description="Account id; generated when omitted")
    name: str | None = Field(None, description="Display name")
    meta: dict[str, Any] | None = Field(None, description="Opaque metadata")


class ContainerUpsertRequest(BaseModel):
    """Create or update a container."""

    model_config = ConfigDict(extra="ignore")

    container_id: str | None = Field(None, description="Container id; generated when omitted")
    account_id: str | None = Field(None, description="Owning account id")
    type: str | None = Field(None, description="'web' or 'server'")
    name: str | None = Field(None, description="Display name")
    version: Any = Field(None, description="Positive integer, defaults to 1")
    variables: list[Any] | None = None
    triggers: list[Any] | None = None
    tags: list[Any] | None = None


class IngestRequest(BaseModel):
    """A single behavioral event."""

    model_config = ConfigDict(extra="ignore")

    event: str | None = Field(None, description="Event name")
    ts: Any = Field(None, description="ISO-8601 time or epoch milliseconds")
    user: dict[str, Any] | None = None
    context: dict[str, Any] | None = None
    biz: dict[str, Any] | None = None


class ChatRequest(BaseModel):
    """Free-text question about the ingested events."""

    prompt: str = ""


# =============================================================================
# Accounts
# =============================================================================


@router.get("/accounts")
async def list_accounts(store: EntityStore = Depends(get_store)):
    return [account.to_dict() for account in await store.list_accounts()]


@router.get("/accounts/{account_id}")
async def get_account(account_id: str, store: EntityStore = Depends(get_store)):
    account = await store.get_account(account_id)
    return account.to_dict()


@router.put("/accounts")
async def upsert_account(body: AccountUpsertRequest, store: EntityStore = Depends(get_store)):
    account = await store.upsert_account(body.model_dump(exclude_none=True))
    return {"ok": True, "account_id": account.account_id, "account": account.to_dict()}


# =============================================================================
# Containers
# =============================================================================


@router.get("/containers")
async def list_containers(
    account_id: str | None = Query(None, description="Only containers of this account"),
    store: EntityStore = Depends(get_store),
):
    containers = await store.list_containers(account_id=account_id or None)
    return [container.to_dict() for container in containers]


@router.get("/containers/{container_id}")
async def get_container(container_id: str, store: EntityStore = Depends(get_store)):
    container = await store.get_container(container_id)
    return container.to_dict()


@router.put("/containers")
async def upsert_container(body: ContainerUpsertRequest, store: EntityStore = Depends(get_store)):
    container = await store.upsert_container(body.model_dump(exclude_none=True))
    return {"ok": True, "container_id": container.container_id, "container": container.to_dict()}


# =============================================================================
# Events & Analytics
# =============================================================================


@router.post("/ingest")
async def ingest(body: IngestRequest, store: EntityStore = Depends(get_store)):
    event = await store.ingest(body.model_dump(exclude_none=True))
    return {"ok": True, "id": event.id}


@router.get("/analytics/overview")
async def analytics_overview(aggregator: Aggregator = Depends(get_aggregator)):
    overview = await aggregator.overview()
    return overview.to_dict()


@router.post("/analysis/chat")
async def analysis_chat(
    body: ChatRequest | None = None,
    aggregator: Aggregator = Depends(get_aggregator),
):
    """Answer with the most frequent event; the prompt is echoed back."""
    prompt = body.prompt if body else ""
    top = await aggregator.top_event()
    name, count = top if top else (NO_TOP_EVENT, 0)
    return {
        "answer": (
            f"Initial analysis: most frequent event is '{name}' with {count} occurrences. "
            f"Question: {prompt}"
        )
    }
