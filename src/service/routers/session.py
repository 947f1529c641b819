from fastapi import APIRouter, Request, HTTPException, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse
import logging

from schema import RememberMeRequest, SessionInfoResponse, SessionValue, SessionValueResponse
from session import SessionData, SessionManager
from service.dependencies import get_session, get_session_manager
from service.middleware import flush_response

logger = logging.getLogger('satchel.service.routers.session')

router = APIRouter(
    tags=["session"],
)


@router.get("/session")
async def get_session_info(session: SessionData = Depends(get_session)) -> SessionInfoResponse:
    return SessionInfoResponse(
        keys=sorted(session.keys()),
        status=session.status.value,
        is_new=session.is_new,
    )


@router.get("/session/values/{key}")
async def get_value(key: str, session: SessionData = Depends(get_session)) -> SessionValueResponse:
    if key not in session:
        raise HTTPException(status_code=404, detail=f"No session value for '{key}'")
    return SessionValueResponse(key=key, value=session[key])


@router.put("/session/values/{key}")
async def put_value(
    key: str,
    body: SessionValue,
    session: SessionData = Depends(get_session),
) -> SessionValueResponse:
    session[key] = body.value
    logger.debug(f"Stored session value for '{key}'")
    return SessionValueResponse(key=key, value=body.value)


@router.delete("/session/values/{key}", response_class=PlainTextResponse)
async def delete_value(key: str, session: SessionData = Depends(get_session)) -> str:
    session.remove(key)
    return "value removed"


@router.post("/session/remember-me", response_class=PlainTextResponse)
async def remember_me(
    body: RememberMeRequest,
    session: SessionData = Depends(get_session),
    session_manager: SessionManager = Depends(get_session_manager),
) -> str:
    session_manager.remember_me(session, body.remember)
    return "remember me updated"


@router.post("/session/renew", response_class=PlainTextResponse)
async def renew_session(
    session: SessionData = Depends(get_session),
    session_manager: SessionManager = Depends(get_session_manager),
) -> str:
    await session_manager.renew_token(session)
    logger.info("Session token renewed")
    return "session renewed"


@router.post("/delete-session", response_class=PlainTextResponse)
async def delete_session(
    session: SessionData = Depends(get_session),
    session_manager: SessionManager = Depends(get_session_manager),
) -> str:
    await session_manager.destroy(session)
    logger.info("Session destroyed")
    return "session deleted"


@router.get("/session/stream")
async def stream_session(request: Request, session: SessionData = Depends(get_session)) -> StreamingResponse:
    """Stream one line per session key, flushing each line to the client as it is produced."""
    keys = sorted(session.keys())

    async def lines():
        for key in keys:
            yield f"{key}\n"
            await flush_response(request)

    return StreamingResponse(lines(), media_type="text/plain")
