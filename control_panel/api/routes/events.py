import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from control_panel.api.dependencies import get_services
from control_panel.core.errors import AuthenticationError

router = APIRouter(prefix="/api", tags=["events"])

logger = logging.getLogger(__name__)


@router.websocket("/events")
async def events_socket(websocket: WebSocket, svc=Depends(get_services)):
    """
    Forward relay events matching ?topic=<pattern> as JSON.

    The token comes from ?token= or the session cookie. Events published
    while the socket is not subscribed are not replayed.
    """
    token = websocket.query_params.get("token") or websocket.cookies.get(svc.settings.cookie_name)
    try:
        user = await run_in_threadpool(svc.users.resolve_token, token)
    except AuthenticationError as e:
        logger.warning(f"[events] rejected websocket: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    pattern = websocket.query_params.get("topic") or "*"
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Relay callbacks run on worker threads
    subscription = svc.relay.subscribe(
        pattern,
        lambda event: loop.call_soon_threadsafe(queue.put_nowait, event.to_dict()),
    )
    logger.info(f"[events] {user.email} subscribed to '{pattern}'")

    async def sender():
        while True:
            await websocket.send_json(await queue.get())

    async def receiver():
        # Client messages are ignored; this only notices the disconnect
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(sender()), asyncio.create_task(receiver())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error and not isinstance(error, WebSocketDisconnect):
                logger.warning(f"[events] websocket closed with error: {error}")
    finally:
        svc.relay.unsubscribe(subscription)
        logger.info(f"[events] {user.email} unsubscribed from '{pattern}'")
