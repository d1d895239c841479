"""App store API routes.

Routes:
    GET  /apps                   public, published apps newest first
    GET  /apps/{app_id}          public for published apps; owner/admin otherwise
    POST /apps                   developer role; returns a presigned upload URL
    POST /apps/{app_id}/download authenticated; returns a presigned download URL
    GET  /admin/apps/pending     admin role; review queue
    GET  /admin/developers       admin role; developer directory, newest first

Gates are FastAPI dependencies: current_identity for authenticated routes,
role_dependency(...) for role-gated ones. They raise the shared GateError
types, which handler.py turns into the standard error body.
"""

import logging

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import JSONResponse

from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import list_profiles
from src.lambdas.shared.auth.roles import has_role
from src.lambdas.shared.config import get_config
from src.lambdas.shared.dependencies import get_email_service, get_s3_client, get_store_table
from src.lambdas.shared.dynamodb import format_timestamp
from src.lambdas.shared.errors import NotFound
from src.lambdas.shared.logging_utils import get_safe_error_info
from src.lambdas.shared.middleware.auth_middleware import (
    Identity,
    current_identity,
    optional_identity,
)
from src.lambdas.shared.middleware.require_role import role_dependency
from src.lambdas.shared.models.application import (
    PENDING,
    PUBLISHED,
    Application,
    ApplicationCreate,
)
from src.lambdas.store.applications import (
    can_view,
    create_application,
    create_download_url,
    create_upload_url,
    get_application,
    list_applications,
    record_download,
)

logger = logging.getLogger(__name__)

APP_ID_PATTERN = r"^[A-Za-z0-9-]{1,64}$"

apps_router = APIRouter(prefix="/apps", tags=["apps"])
# Every admin route requires the admin role
admin_router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(role_dependency(Role.ADMIN))],
)


def _load_visible(table, app_id: str, identity: Identity | None) -> Application:
    """Application the caller may see; hidden apps look missing."""
    application = get_application(table, app_id)
    if application is None:
        raise NotFound("App not found")

    if application.status != PUBLISHED:
        user_id = identity.user_id if identity else None
        is_admin = identity is not None and has_role(table, identity.user_id, Role.ADMIN)
        if not can_view(application, user_id, is_admin):
            raise NotFound("App not found")

    return application


def _send_confirmation(identity: Identity, application: Application, submitted_at: str) -> bool:
    if not identity.email:
        return False
    try:
        return get_email_service().send_submission_confirmation(
            to_email=identity.email,
            app_name=application.app_name,
            version_name=application.version_name,
            submitted_at=submitted_at,
        )
    except Exception as e:
        logger.warning(
            "Submission confirmation failed",
            extra={"application_id": application.application_id, **get_safe_error_info(e)},
        )
        return False


# ===================================================================
# Catalog
# ===================================================================


@apps_router.get("")
async def list_published(table=Depends(get_store_table)):
    """Published apps, newest first."""
    apps = list_applications(table, PUBLISHED)
    return JSONResponse({"apps": [app.public_view() for app in apps]})


@apps_router.get("/{app_id}")
async def get_app(
    app_id: str = Path(..., pattern=APP_ID_PATTERN),
    identity: Identity | None = Depends(optional_identity),
    table=Depends(get_store_table),
):
    """App details; non-published apps only for their developer or an admin."""
    application = _load_visible(table, app_id, identity)
    return JSONResponse(application.public_view())


@apps_router.post("")
async def submit_app(
    body: ApplicationCreate,
    identity: Identity = Depends(role_dependency(Role.DEVELOPER)),
    table=Depends(get_store_table),
):
    """Create a pending application and hand back a presigned upload URL."""
    config = get_config()

    application, submission = create_application(table, identity.user_id, body)

    upload_url = create_upload_url(
        get_s3_client(),
        config.apk_bucket,
        application.apk_file_path,
        config.signed_url_expiry_seconds,
    )

    confirmation_sent = _send_confirmation(
        identity, application, format_timestamp(submission.submitted_at)
    )

    return JSONResponse(
        {
            "app": application.public_view(),
            "uploadUrl": upload_url,
            "expiresIn": config.signed_url_expiry_seconds,
            "confirmationSent": confirmation_sent,
        },
        status_code=201,
    )


@apps_router.post("/{app_id}/download")
async def download_app(
    request: Request,
    app_id: str = Path(..., pattern=APP_ID_PATTERN),
    identity: Identity = Depends(current_identity),
    table=Depends(get_store_table),
):
    """Presigned download URL; the download is logged best-effort."""
    config = get_config()

    application = _load_visible(table, app_id, identity)
    if not application.apk_file_path:
        raise NotFound("App not found")

    download_url = create_download_url(
        get_s3_client(),
        config.apk_bucket,
        application.apk_file_path,
        config.signed_url_expiry_seconds,
    )

    record_download(
        table,
        application,
        identity.user_id,
        request.headers.get("user-agent"),
    )

    return JSONResponse(
        {
            "downloadUrl": download_url,
            "expiresIn": config.signed_url_expiry_seconds,
        }
    )


# ===================================================================
# Admin
# ===================================================================


@admin_router.get("/apps/pending")
async def list_pending(table=Depends(get_store_table)):
    """Review queue, newest first, with the submitting developer."""
    apps = list_applications(table, PENDING)
    return JSONResponse(
        {
            "apps": [
                {**app.public_view(), "developerId": app.developer_id} for app in apps
            ]
        }
    )


@admin_router.get("/developers")
async def list_developers(table=Depends(get_store_table)):
    """Developer directory for the admin dashboard, newest first."""
    profiles = list_profiles(table)
    return JSONResponse({"developers": [profile.admin_view() for profile in profiles]})


def include_routers(app):
    """Include the store routers in the FastAPI app."""
    app.include_router(apps_router)
    app.include_router(admin_router)
