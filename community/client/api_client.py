import logging
from typing import Any
from uuid import UUID

import httpx

from community.client.realtime import NotificationSocket
from community.client.session import ClientSession
from community.core.config import settings
from community.core.errors import (
    ERRORS_BY_CODE,
    CommunityError,
    EngagementWriteFailed,
    Forbidden,
    NotFound,
    Unauthorized,
)
from community.schemas.engagement import EngagementStateResponse, ToggleEngagementResponse
from community.schemas.notification import (
    DeleteReadResponse,
    DeleteSelectedResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
)

logger = logging.getLogger(__name__)

ERRORS_BY_STATUS: dict[int, type[CommunityError]] = {
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
}


class CommunityClient:
    """Async client for the ``/api/v1`` HTTP surface."""

    def __init__(
        self,
        session: ClientSession,
        *,
        base_url: str = "http://localhost:8000",
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.session = session
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=settings.client_timeout_seconds)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def get_post_engagement(self, post_id: UUID) -> EngagementStateResponse:
        data = await self._request("GET", f"/api/v1/posts/{post_id}/engagement")
        return EngagementStateResponse.model_validate(data)

    async def toggle_post_up(self, post_id: UUID) -> ToggleEngagementResponse:
        data = await self._request(
            "POST",
            f"/api/v1/posts/{post_id}/ups/toggle",
            transport_error=EngagementWriteFailed,
        )
        return ToggleEngagementResponse.model_validate(data)

    async def toggle_comment_like(self, comment_id: UUID) -> ToggleEngagementResponse:
        data = await self._request(
            "POST",
            f"/api/v1/comments/{comment_id}/likes/toggle",
            transport_error=EngagementWriteFailed,
        )
        return ToggleEngagementResponse.model_validate(data)

    async def list_notifications(self, *, limit: int | None = None) -> NotificationListResponse:
        params = {"limit": limit} if limit is not None else None
        data = await self._request("GET", "/api/v1/notifications", params=params)
        return NotificationListResponse.model_validate(data)

    async def unread_count(self) -> int:
        data = await self._request("GET", "/api/v1/notifications/unread-count")
        return int(data["unread_count"])

    async def mark_read(self, notification_id: UUID) -> MarkReadResponse:
        data = await self._request("POST", f"/api/v1/notifications/{notification_id}/read")
        return MarkReadResponse.model_validate(data)

    async def mark_all_read(self) -> MarkAllReadResponse:
        data = await self._request("POST", "/api/v1/notifications/read-all")
        return MarkAllReadResponse.model_validate(data)

    async def delete_read(self) -> DeleteReadResponse:
        data = await self._request("DELETE", "/api/v1/notifications/read")
        return DeleteReadResponse.model_validate(data)

    async def delete_selected(self, notification_ids: list[UUID]) -> DeleteSelectedResponse:
        data = await self._request(
            "POST",
            "/api/v1/notifications/delete",
            json={"ids": [str(notification_id) for notification_id in notification_ids]},
        )
        return DeleteSelectedResponse.model_validate(data)

    async def subscribe_notifications(self) -> NotificationSocket:
        """Open the push socket for the signed-in user's notifications."""
        token = self.session.access_token
        if not token:
            raise Unauthorized()
        socket = NotificationSocket(self.http, f"/api/v1/ws/notifications?token={token}")
        return await socket.start()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        transport_error: type[CommunityError] = CommunityError,
    ) -> dict[str, Any]:
        headers = {}
        if self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        try:
            response = await self.http.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("api request failed", extra={"method": method, "path": path, "error": str(exc)})
            raise transport_error(str(exc) or None) from exc

        if response.status_code >= 400:
            raise self._error_from_response(response, transport_error)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _error_from_response(self, response: httpx.Response, fallback: type[CommunityError]) -> CommunityError:
        detail: str | None = None
        code: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            if isinstance(body.get("detail"), str):
                detail = body["detail"]

        error_cls = ERRORS_BY_CODE.get(code or "") or ERRORS_BY_STATUS.get(response.status_code) or fallback
        return error_cls(detail)
