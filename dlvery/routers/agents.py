import json
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, Response, StreamingResponse

from dlvery.core.session import AgentSession, current_agent
from dlvery.db.store import CollectionStore, get_store
from dlvery.schemas.deliveries import DeliveryOut, DeliveryQueue, StatusChangeRequest, StatusChangeResult
from dlvery.schemas.users import AgentSessionCreate, AgentSessionRead, UserRead, normalize_user
from dlvery.schemas.verifications import VerificationCreate, VerificationOut
from dlvery.services.lifecycle import change_status, confirm_delivery
from dlvery.services.live_view import AgentQueueView
from dlvery.services.prioritization import BUCKETS, build_queue

from .verifications import verification_out

router = APIRouter()


def _queue_out(queue: dict) -> DeliveryQueue:
    return DeliveryQueue(
        agent=queue["agent"],
        as_of=queue["as_of"],
        **{key: [DeliveryOut.from_delivery(d) for d in queue[key]] for key in BUCKETS},
    )


@router.get("/", response_model=List[UserRead])
async def list_agents(store: CollectionStore = Depends(get_store)):
    """Users registered as delivery agents."""
    users = [normalize_user(d) for d in await store.get_all("users")]
    return [UserRead(**u) for u in users if u["role"] == "DLTeam" and u["email"]]


@router.post("/session", response_model=AgentSessionRead)
async def start_agent_session(payload: AgentSessionCreate):
    session = AgentSession(agent=payload.email)
    response = JSONResponse(content={"agent": session.agent})
    session.save(response)
    return response


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def end_agent_session():
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    AgentSession.clear(response)
    return response


@router.get("/me", response_model=AgentSessionRead)
async def read_agent_session(session: AgentSession = Depends(current_agent)):
    return AgentSessionRead(agent=session.agent)


@router.get("/me/queue", response_model=DeliveryQueue)
async def read_agent_queue(
    today: Optional[date] = None,
    session: AgentSession = Depends(current_agent),
    store: CollectionStore = Depends(get_store),
):
    """The agent's deliveries grouped into past / today / upcoming, most urgent first."""
    return _queue_out(await build_queue(store, session.agent, today))


@router.patch("/me/deliveries/{delivery_id}/status", response_model=StatusChangeResult)
async def update_own_delivery_status(
    delivery_id: str,
    payload: StatusChangeRequest,
    session: AgentSession = Depends(current_agent),
    store: CollectionStore = Depends(get_store),
):
    return StatusChangeResult(**await change_status(store, delivery_id, payload.status, agent=session.agent))


@router.post(
    "/me/deliveries/{delivery_id}/confirm",
    response_model=VerificationOut,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_own_delivery(
    delivery_id: str,
    payload: VerificationCreate,
    session: AgentSession = Depends(current_agent),
    store: CollectionStore = Depends(get_store),
):
    verification = await confirm_delivery(
        store, delivery_id, payload.customer_name, payload.signature, agent=session.agent
    )
    return verification_out(verification)


@router.get("/me/stream")
async def stream_agent_queue(
    limit: Optional[int] = Query(None, ge=1, description="Close the stream after this many snapshots"),
    session: AgentSession = Depends(current_agent),
    store: CollectionStore = Depends(get_store),
):
    """
    Newline-delimited JSON: one full queue per line, first the current state
    then one after every change to the agent's deliveries.
    """
    view = AgentQueueView(store, session.agent)

    async def lines():
        sent = 0
        updates = view.updates()
        try:
            async for current in updates:
                payload = _queue_out(current.queue()).model_dump(mode="json", by_alias=True)
                payload["conditionChanges"] = [
                    {"deliveryId": c.delivery_id, "sku": c.sku, "type": c.type} for c in current.changes
                ]
                yield json.dumps(payload) + "\n"
                sent += 1
                if limit is not None and sent >= limit:
                    break
        finally:
            await updates.aclose()

    return StreamingResponse(lines(), media_type="application/x-ndjson")
