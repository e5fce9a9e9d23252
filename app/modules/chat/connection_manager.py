"""WebSocket rooms for team chat: connection bookkeeping and broadcast"""

import logging
from typing import Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WSCloseCode:
    INVALID_TOKEN = 4401
    FORBIDDEN = 4403
    NOT_FOUND = 4404


class ChatConnectionManager:
    """Per-team WebSocket connections"""

    def __init__(self):
        # team_id -> {user_id -> WebSocket}
        self._connections: Dict[str, Dict[str, WebSocket]] = {}

    async def connect(self, team_id: str, user_id: str, websocket: WebSocket) -> None:
        """Accept and register; a newer connection from the same user replaces the old one"""
        await websocket.accept()
        room = self._connections.setdefault(team_id, {})
        previous = room.get(user_id)
        room[user_id] = websocket
        if previous is not None and previous is not websocket:
            try:
                await previous.close()
            except Exception as e:
                logger.debug(f"Closing replaced socket for {user_id} failed: {e}")
        logger.info(f"User {user_id} joined chat of team {team_id}")

    def disconnect(self, team_id: str, user_id: str, websocket: Optional[WebSocket] = None) -> None:
        room = self._connections.get(team_id)
        if not room:
            return
        if websocket is None or room.get(user_id) is websocket:
            room.pop(user_id, None)
        if not room:
            del self._connections[team_id]
        logger.info(f"User {user_id} left chat of team {team_id}")

    async def broadcast(self, team_id: str, message: dict) -> int:
        """Send to everyone in the room; sockets that fail are dropped. Returns delivered count."""
        room = self._connections.get(team_id)
        if not room:
            return 0

        delivered = 0
        disconnected = []
        for user_id, websocket in list(room.items()):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send message to {user_id}: {e}")
                disconnected.append(user_id)

        for user_id in disconnected:
            room.pop(user_id, None)
        if not room:
            self._connections.pop(team_id, None)
        return delivered

    async def close_user(self, team_id: str, user_id: str, code: int, reason: str = "") -> bool:
        """Drop a user from a room and close their socket; False when they were not connected"""
        room = self._connections.get(team_id)
        websocket = room.pop(user_id, None) if room else None
        if room is not None and not room:
            self._connections.pop(team_id, None)
        if websocket is None:
            return False
        try:
            await websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Closing socket for {user_id} failed: {e}")
        logger.info(f"User {user_id} disconnected from chat of team {team_id}: {reason}")
        return True

    async def close_room(self, team_id: str, code: int, reason: str = "") -> int:
        """Close every socket in a room. Returns how many were open."""
        room = self._connections.pop(team_id, {})
        for user_id, websocket in room.items():
            try:
                await websocket.close(code=code, reason=reason)
            except Exception as e:
                logger.debug(f"Closing socket for {user_id} in team {team_id} failed: {e}")
        return len(room)

    async def revoke_member(self, team_id: str, user_id: str, team_deleted: bool = False) -> int:
        """Cut chat access after a member leaves or is removed; a deleted team closes the whole room"""
        if team_deleted:
            return await self.close_room(team_id, WSCloseCode.NOT_FOUND, "Team deleted")
        closed = await self.close_user(team_id, user_id, WSCloseCode.FORBIDDEN, "Removed from team")
        return int(closed)

    async def close_all(self) -> None:
        """Close every open chat socket (server shutdown)"""
        for team_id in list(self._connections):
            await self.close_room(team_id, code=1001, reason="Server shutdown")

    def get_online_user_ids(self, team_id: str) -> List[str]:
        return list(self._connections.get(team_id, {}).keys())

    def is_connected(self, team_id: str, user_id: str) -> bool:
        return user_id in self._connections.get(team_id, {})


connection_manager = ChatConnectionManager()
