import logging
from uuid import UUID

from community.client.api_client import CommunityClient
from community.client.session import ClientSession
from community.core.errors import CommunityError, Unauthorized
from community.models.engagement_edge import TARGET_KIND_POST
from community.schemas.engagement import ToggleEngagementResponse

logger = logging.getLogger(__name__)


class EngagementToggle:
    """State behind one up/like button.

    The toggle is applied optimistically and rolled back when the write
    fails. While a request is in flight further toggles are ignored, and once
    disposed, late completions no longer touch the state.
    """

    def __init__(
        self,
        *,
        client: CommunityClient,
        session: ClientSession,
        target_kind: str,
        target_id: UUID,
        active: bool = False,
        count: int = 0,
    ) -> None:
        self.client = client
        self.session = session
        self.target_kind = target_kind
        self.target_id = target_id
        self.active = active
        self.count = count
        self.in_flight = False
        self.error: str | None = None
        self.disposed = False

    async def load(self) -> None:
        """Fetch the initial state of a post's up button."""
        if self.target_kind != TARGET_KIND_POST:
            raise ValueError("only post engagement can be loaded directly")
        state = await self.client.get_post_engagement(self.target_id)
        if not self.disposed:
            self.active = state.active
            self.count = state.count

    async def toggle(self) -> bool:
        if self.disposed or self.in_flight:
            return False
        self.error = None
        if self.session.current() is None:
            self.error = Unauthorized().message
            return False

        previous = (self.active, self.count)
        self.active = not self.active
        self.count = max(0, self.count + (1 if self.active else -1))
        self.in_flight = True
        try:
            result = await self._send()
        except CommunityError as exc:
            logger.warning(
                "engagement toggle failed",
                extra={"target_kind": self.target_kind, "target_id": str(self.target_id), "code": exc.code},
            )
            if not self.disposed:
                self.active, self.count = previous
                self.error = exc.message
            return False
        finally:
            self.in_flight = False

        if not self.disposed:
            self.active = result.active
            self.count = result.new_count
        return True

    def dispose(self) -> None:
        self.disposed = True

    async def _send(self) -> ToggleEngagementResponse:
        if self.target_kind == TARGET_KIND_POST:
            return await self.client.toggle_post_up(self.target_id)
        return await self.client.toggle_comment_like(self.target_id)
