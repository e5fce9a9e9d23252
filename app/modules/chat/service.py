from supabase import Client
from app.config.settings import settings
from app.modules.chat.schemas import ChatMessageResponse, ChatMessagePage
from app.modules.profiles.service import display_name
from typing import Optional
from datetime import datetime
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _sender_names(self, sender_ids) -> dict:
        ids = list(set(sender_ids))
        if not ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("id, first_name, last_name, email")\
            .in_("id", ids)\
            .execute()
        return {p["id"]: display_name(p) for p in result.data or []}

    def list_messages(
        self,
        team_id: str,
        before: Optional[datetime] = None,
        before_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> ChatMessagePage:
        """
        Page of messages in chronological order, ending just before the cursor
        (newest page when omitted). The cursor is the (created_at, id) of the oldest
        message already shown; messages sharing that timestamp are ordered by id.
        """
        limit = max(1, min(limit or settings.chat_page_size, 200))
        query = self.supabase.table("chat_messages")\
            .select("*")\
            .eq("team_id", team_id)
        if before is not None:
            stamp = before.isoformat()
            if before_id:
                query = query.or_(f'created_at.lt."{stamp}",and(created_at.eq."{stamp}",id.lt.{before_id})')
            else:
                query = query.lt("created_at", stamp)

        result = query.order("created_at", desc=True)\
            .order("id", desc=True)\
            .limit(limit + 1)\
            .execute()

        rows = result.data or []
        has_more = len(rows) > limit
        rows = list(reversed(rows[:limit]))
        names = self._sender_names(m["sender_id"] for m in rows)
        return ChatMessagePage(
            messages=[ChatMessageResponse(**m, sender_name=names.get(m["sender_id"])) for m in rows],
            has_more=has_more
        )

    @staticmethod
    def clean_content(content: Optional[str], has_attachment: bool = False) -> str:
        content = (content or "").strip()
        if not content and not has_attachment:
            raise HTTPException(status_code=400, detail="Message content cannot be empty")
        if len(content) > settings.chat_max_message_length:
            raise HTTPException(
                status_code=400,
                detail=f"Message exceeds {settings.chat_max_message_length} characters"
            )
        return content

    def create_message(
        self,
        team_id: str,
        sender: dict,
        content: str,
        attachment_url: Optional[str] = None,
        attachment_name: Optional[str] = None
    ) -> ChatMessageResponse:
        """Store a message; content is trimmed and may only be empty when an attachment is present"""
        content = self.clean_content(content, has_attachment=bool(attachment_url))

        try:
            result = self.supabase.table("chat_messages").insert({
                "team_id": team_id,
                "sender_id": sender["id"],
                "content": content,
                "attachment_url": attachment_url,
                "attachment_name": attachment_name
            }).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to send message")
        return ChatMessageResponse(**result.data[0], sender_name=display_name(sender))

    def get_message_row(self, team_id: str, message_id: str) -> dict:
        result = self.supabase.table("chat_messages")\
            .select("*")\
            .eq("id", message_id)\
            .eq("team_id", team_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Message not found")
        return result.data[0]

    def delete_message(self, message_id: str) -> bool:
        try:
            result = self.supabase.table("chat_messages")\
                .delete()\
                .eq("id", message_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return len(result.data) > 0
