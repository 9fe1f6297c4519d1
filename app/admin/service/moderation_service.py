# app/admin/service/moderation_service.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException

from app.audit.entity.audit import AuditPage, AuditQuery
from app.audit.service.audit_service import AuditService
from app.chat.entity.chat import ChatExchange, ChatPage, ChatQuery
from app.chat.service.service import IChatRepository
from app.core.client_info import ClientInfo
from app.security.entity.banned_ip import BannedIp
from app.security.service.ip_ban_service import IpBanService


class ModerationService:
    """
    Admin-side operations over stored chat exchanges and banned addresses.
    Every mutation leaves an audit entry attributed to the acting admin.
    """

    def __init__(
        self,
        chat_repository: IChatRepository,
        ip_ban_service: IpBanService,
        audit_service: AuditService,
        logger: logging.Logger,
    ):
        self.chat_repository = chat_repository
        self.ip_ban_service = ip_ban_service
        self.audit_service = audit_service
        self.logger = logger

    async def _audit(self, action: str, admin_id: str, client: ClientInfo, **details):
        ip_address, user_agent = client
        await self.audit_service.log(action, admin_id, ip_address=ip_address, user_agent=user_agent, details=details)

    async def _require_exchange(self, exchange_id: int) -> ChatExchange:
        exchange = await self.chat_repository.get_exchange(exchange_id)
        if exchange is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        return exchange

    # Chats

    async def list_chats(self, query: ChatQuery) -> ChatPage:
        return await self.chat_repository.search(query)

    async def get_chat(self, exchange_id: int) -> ChatExchange:
        return await self._require_exchange(exchange_id)

    async def delete_chat(self, exchange_id: int, admin_id: str, client: ClientInfo) -> None:
        exchange = await self._require_exchange(exchange_id)
        await self.chat_repository.delete_exchange(exchange_id)
        await self._audit(
            "admin_delete_chat", admin_id, client,
            chat_id=exchange_id, user_id=exchange.user_id, session_id=exchange.session_id,
        )

    async def bulk_delete(self, exchange_ids: List[int], admin_id: str, client: ClientInfo) -> int:
        existing = set(await self.chat_repository.existing_ids(exchange_ids))
        missing = sorted(set(exchange_ids) - existing)
        if missing:
            raise HTTPException(status_code=422, detail=f"Chats not found: {missing}")
        deleted = await self.chat_repository.delete_many(exchange_ids)
        await self._audit("admin_bulk_delete_chats", admin_id, client, deleted_count=deleted, chat_ids=exchange_ids)
        return deleted

    async def flag(self, exchange_id: int, reason: Optional[str], admin_id: str, client: ClientInfo) -> ChatExchange:
        exchange = await self.chat_repository.set_flag(exchange_id, admin_id, reason, datetime.now(timezone.utc))
        if exchange is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        await self._audit("admin_flag_chat", admin_id, client, chat_id=exchange_id, reason=reason)
        return exchange

    async def unflag(self, exchange_id: int, admin_id: str, client: ClientInfo) -> ChatExchange:
        exchange = await self.chat_repository.clear_flag(exchange_id)
        if exchange is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        await self._audit("admin_unflag_chat", admin_id, client, chat_id=exchange_id)
        return exchange

    async def review(self, exchange_id: int, action: Optional[str], notes: Optional[str],
                     admin_id: str, client: ClientInfo) -> ChatExchange:
        exchange = await self.chat_repository.mark_reviewed(
            exchange_id,
            admin_id,
            datetime.now(timezone.utc),
            reject=action == "reject",
            notes=notes,
        )
        if exchange is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        await self._audit("admin_review_chat", admin_id, client, chat_id=exchange_id, review_action=action, notes=notes)
        return exchange

    # Banned IPs

    async def list_banned_ips(self) -> List[BannedIp]:
        return await self.ip_ban_service.list_bans()

    async def ban_ip(self, ip_address: str, reason: Optional[str], admin_id: str,
                     client: ClientInfo) -> Tuple[BannedIp, bool]:
        try:
            ban, created = await self.ip_ban_service.ban(ip_address, reason, admin_id)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid IP address: {ip_address}")
        if created:
            await self._audit("admin_ban_ip", admin_id, client, ip_address=ban.ip_address, reason=reason)
        return ban, created

    async def unban_ip(self, ban_id: int, admin_id: str, client: ClientInfo) -> BannedIp:
        ban = await self.ip_ban_service.unban(ban_id)
        if ban is None:
            raise HTTPException(status_code=404, detail="Banned IP not found")
        await self._audit("admin_unban_ip", admin_id, client, ip_address=ban.ip_address)
        return ban

    # Activity

    async def list_activity(self, query: AuditQuery) -> AuditPage:
        return await self.audit_service.search(query)
