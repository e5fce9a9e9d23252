from fastapi import (
    APIRouter, Depends, HTTPException, UploadFile, File, Form,
    WebSocket, WebSocketDisconnect, status
)
from app.config.settings import settings
from app.config.permissions_config import has_permission
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.chat.connection_manager import connection_manager, WSCloseCode
from app.modules.chat.schemas import ChatMessageCreate, ChatMessageResponse, ChatMessagePage
from app.modules.chat.service import ChatService
from app.modules.storage.service import FileStorageService, build_object_path, read_upload, safe_filename
from app.core.dependencies import (
    require_permission, check_team_access, get_auth_service, load_profile, is_admin
)
from supabase import Client
from typing import Optional, Dict
from datetime import datetime
import json
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams/{team_id}", tags=["chat"])


def get_chat_service(supabase: Client = Depends(get_supabase)) -> ChatService:
    return ChatService(supabase)


def get_storage_service(supabase: Client = Depends(get_supabase)) -> FileStorageService:
    return FileStorageService(supabase)


def message_event(message: ChatMessageResponse) -> dict:
    return {"type": "message", "message": message.model_dump(mode="json")}


@router.get("/messages", response_model=ChatMessagePage)
async def list_messages(
    team_id: str,
    before: Optional[datetime] = None,
    before_id: Optional[str] = None,
    limit: Optional[int] = None,
    profile: Dict = Depends(require_permission("chat:read")),
    service: ChatService = Depends(get_chat_service),
    supabase: Client = Depends(get_supabase)
):
    """Chat history, oldest first; pass the created_at and id of the oldest shown message to page back"""
    check_team_access(team_id, profile, supabase)
    return service.list_messages(team_id, before=before, before_id=before_id, limit=limit)


@router.post("/messages", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    team_id: str,
    message_data: ChatMessageCreate,
    profile: Dict = Depends(require_permission("chat:write")),
    service: ChatService = Depends(get_chat_service),
    supabase: Client = Depends(get_supabase)
):
    """Send a message and push it to everyone connected to the team chat"""
    check_team_access(team_id, profile, supabase)
    message = service.create_message(team_id, profile, message_data.content)
    await connection_manager.broadcast(team_id, message_event(message))
    return message


@router.post("/messages/attachments", response_model=ChatMessageResponse, status_code=201)
async def send_attachment(
    team_id: str,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    profile: Dict = Depends(require_permission("chat:write")),
    service: ChatService = Depends(get_chat_service),
    storage: FileStorageService = Depends(get_storage_service),
    supabase: Client = Depends(get_supabase)
):
    """Upload a file to the team's chat and announce it as a message"""
    check_team_access(team_id, profile, supabase)
    caption = service.clean_content(caption, has_attachment=True)
    content, content_type = await read_upload(file)
    bucket = settings.chat_attachments_bucket
    url = storage.upload_file(bucket, build_object_path(team_id, file.filename), content, content_type)
    try:
        message = service.create_message(
            team_id, profile, caption,
            attachment_url=url,
            attachment_name=safe_filename(file.filename)
        )
    except HTTPException:
        storage.delete_urls(bucket, [url])
        raise
    await connection_manager.broadcast(team_id, message_event(message))
    return message


@router.delete("/messages/{message_id}", status_code=204)
async def delete_message(
    team_id: str,
    message_id: str,
    profile: Dict = Depends(require_permission("chat:write")),
    service: ChatService = Depends(get_chat_service),
    storage: FileStorageService = Depends(get_storage_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete a message (sender or admin) together with its attachment"""
    check_team_access(team_id, profile, supabase)
    message = service.get_message_row(team_id, message_id)
    if message["sender_id"] != profile["id"] and not is_admin(profile):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own messages")
    service.delete_message(message_id)
    storage.delete_urls(settings.chat_attachments_bucket, [message.get("attachment_url")])
    await connection_manager.broadcast(team_id, {"type": "message_deleted", "id": message_id})
    return None


def _close_code_for(exc: HTTPException) -> int:
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        return WSCloseCode.INVALID_TOKEN
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return WSCloseCode.NOT_FOUND
    return WSCloseCode.FORBIDDEN


async def handle_chat_frame(
    websocket: WebSocket,
    team_id: str,
    profile: dict,
    frame: dict,
    service: ChatService
) -> bool:
    """
    Handle one client frame: {"type": "message", "content": ...} or {"type": "ping"}.
    Returns False when the socket was closed because the user lost access to the team.
    """
    frame_type = frame.get("type")
    if frame_type == "ping":
        await websocket.send_json({"type": "pong"})
        return True
    if frame_type != "message":
        await websocket.send_json({"type": "error", "detail": f"Unknown frame type: {frame_type}"})
        return True
    if not has_permission(profile.get("role"), "chat:write"):
        await websocket.send_json({"type": "error", "detail": "Insufficient permissions. Required: chat:write"})
        return True
    try:
        check_team_access(team_id, profile, service.supabase)
    except HTTPException as e:
        await websocket.close(code=_close_code_for(e), reason=str(e.detail))
        return False
    try:
        message = service.create_message(team_id, profile, frame.get("content") or "")
    except HTTPException as e:
        await websocket.send_json({"type": "error", "detail": e.detail})
        return True
    await connection_manager.broadcast(team_id, message_event(message))
    return True


@router.websocket("/chat/ws")
async def chat_websocket(
    websocket: WebSocket,
    team_id: str,
    token: Optional[str] = None,
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase)
):
    """Realtime team chat. Authenticate with ?token=<access token>."""
    if not token:
        await websocket.close(code=WSCloseCode.INVALID_TOKEN, reason="Missing token")
        return
    try:
        user_data = auth_service.get_current_user(token)
        profile = load_profile(user_data["id"], supabase)
        if not profile or not has_permission(profile.get("role"), "chat:read"):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chat not accessible")
        check_team_access(team_id, profile, supabase)
    except HTTPException as e:
        await websocket.close(code=_close_code_for(e), reason=str(e.detail))
        return

    service = ChatService(supabase)
    user_id = profile["id"]
    await connection_manager.connect(team_id, user_id, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                await websocket.send_json({"type": "error", "detail": "Frames must be JSON objects"})
                continue
            if not isinstance(frame, dict):
                await websocket.send_json({"type": "error", "detail": "Frames must be JSON objects"})
                continue
            if not await handle_chat_frame(websocket, team_id, profile, frame, service):
                break
    except WebSocketDisconnect:
        logger.info(f"Chat socket closed: user={user_id}, team={team_id}")
    finally:
        connection_manager.disconnect(team_id, user_id, websocket)
