"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from rights_review.adapters.access_sheet_client import HttpxAccessSheetClient
from rights_review.adapters.jwks_client import HttpxJwksClient
from rights_review.adapters.supabase_kv_store import SupabaseKeyValueStore
from rights_review.config import Settings, parse_csv
from rights_review.services.access import AccessConfigClient
from rights_review.services.notifications import NotificationService
from rights_review.services.rights_requests import RightsRequestService
from rights_review.services.sessions import SessionResolver
from rights_review.services.storage import KvNamespaces
from rights_review.services.tokens import IdTokenValidator, SessionTokenCodec

REQUESTS_NAMESPACE = "RIGHTS_REQUESTS"
REVIEWS_NAMESPACE = "RIGHTS_REQUEST_REVIEWS"
MESSAGES_NAMESPACE = "MESSAGES"


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    stores: KvNamespaces
    access_client: AccessConfigClient
    session_resolver: SessionResolver
    token_codec: SessionTokenCodec | None
    id_token_validator: IdTokenValidator | None
    notification_service: NotificationService
    rights_request_service: RightsRequestService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    stores = KvNamespaces(
        requests=SupabaseKeyValueStore(supabase_client, REQUESTS_NAMESPACE),
        reviews=SupabaseKeyValueStore(supabase_client, REVIEWS_NAMESPACE),
        messages=SupabaseKeyValueStore(supabase_client, MESSAGES_NAMESPACE),
    )
    access_client = HttpxAccessSheetClient.create(
        origin=resolved_settings.content_origin,
        path=resolved_settings.access_config_path,
        token=resolved_settings.content_origin_token,
    )
    allowed_domains = parse_csv(resolved_settings.allowed_email_domains)
    session_resolver = SessionResolver(
        access_client=access_client,
        allowed_email_domains=allowed_domains,
        production_hosts=parse_csv(resolved_settings.production_hosts),
    )
    token_codec = None
    if resolved_settings.cookie_secret and resolved_settings.entra_client_id:
        token_codec = SessionTokenCodec(
            secret=resolved_settings.cookie_secret,
            audience=resolved_settings.entra_client_id,
            lifetime_seconds=resolved_settings.session_cookie_expiration,
        )
    jwks_client = None
    id_token_validator = None
    if (
        resolved_settings.entra_jwks_url
        and resolved_settings.entra_tenant_id
        and resolved_settings.entra_client_id
    ):
        jwks_client = HttpxJwksClient.create(resolved_settings.entra_jwks_url)
        id_token_validator = IdTokenValidator(
            jwks_client=jwks_client,
            tenant_id=resolved_settings.entra_tenant_id,
            client_id=resolved_settings.entra_client_id,
        )
    notification_service = NotificationService(
        stores.messages,
        default_sender=f"system@{allowed_domains[0]}" if allowed_domains else "system",
    )
    rights_request_service = RightsRequestService(
        stores=stores,
        notification_service=notification_service,
        access_client=access_client,
        notification_emails=parse_csv(resolved_settings.rights_notification_emails),
    )

    async def close_resources() -> None:
        await access_client.close()
        if jwks_client is not None:
            await jwks_client.close()

    return AppContainer(
        settings=resolved_settings,
        stores=stores,
        access_client=access_client,
        session_resolver=session_resolver,
        token_codec=token_codec,
        id_token_validator=id_token_validator,
        notification_service=notification_service,
        rights_request_service=rights_request_service,
        close_resources=close_resources,
    )
