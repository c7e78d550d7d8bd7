from typing import Any, Dict, List, Union

from anyio import to_thread
from fastapi import APIRouter, HTTPException, Request

from ..exceptions import PayloadError
from ..logging import jlog

router = APIRouter()

@router.post("/events")
async def receive_events(request: Request, body: Union[Dict[str, Any], List[Dict[str, Any]]]) -> Dict[str, Any]:
    """
    Hands each event to the output adapter in order, one at a time.
    Publish failures are logged by the adapter; bad payloads -> 422.
    """
    events = body if isinstance(body, list) else [body]
    output = request.app.state.output

    received = 0
    for event in events:
        async with request.app.state.output_semaphore:
            try:
                await to_thread.run_sync(output.receive, event)
            except PayloadError as e:
                jlog(event="event_rejected", severity="WARNING", error=str(e), received=received)
                raise HTTPException(status_code=422, detail=str(e)) from e
        received += 1

    return {"received": received}
