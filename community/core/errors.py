class CommunityError(Exception):
    status_code = 400
    code = "community_error"
    default_message = "request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(CommunityError):
    status_code = 401
    code = "unauthorized"
    default_message = "login required"


class Forbidden(CommunityError):
    status_code = 403
    code = "forbidden"
    default_message = "not allowed"


class NotFound(CommunityError):
    status_code = 404
    code = "not_found"
    default_message = "not found"


class EngagementWriteFailed(CommunityError):
    status_code = 503
    code = "engagement_write_failed"
    default_message = "could not save engagement, please retry"


class NotificationEmitFailed(CommunityError):
    status_code = 500
    code = "notification_emit_failed"
    default_message = "could not emit notification"


class SubscriptionError(CommunityError):
    status_code = 503
    code = "subscription_error"
    default_message = "realtime channel lost, refresh to load new items"


ERRORS_BY_CODE: dict[str, type[CommunityError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        Forbidden,
        NotFound,
        EngagementWriteFailed,
        NotificationEmitFailed,
        SubscriptionError,
    )
}
