"""
Connect app endpoints: descriptor, lifecycle, issue panels, enhancement and write-back.
"""
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent.prompt import build_generation_config, build_prompt, get_template
from middleware.connect_auth import (
    ConnectAuthError,
    ConnectContext,
    require_connect_jwt,
    require_connect_jwt_ajax,
    require_connect_jwt_skip_qsh,
)
from services.gemini_client import GeminiClientError, GeminiConfigError
from services.jira_client import JiraClient, JiraClientError
from services.response_normalizer import ResponseFormatError, normalize
from services.credential_store import TenantCredentials
from src.aava_jira_connect.version import __version__

logger = logging.getLogger(__name__)

PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"

HEALTH_MESSAGE = "AAVA Jira Connect app running ✅"

router = APIRouter()


class EnhanceDescriptionRequest(BaseModel):
    """Request body for /enhance-description."""

    model_config = ConfigDict(populate_by_name=True)

    current_description: Optional[str] = Field(
        default="",
        alias="currentDescription",
        description="Current (usually vague) issue description, inserted verbatim into the prompt"
    )


class UpdateDescriptionRequest(BaseModel):
    """Request body for /update-description."""

    model_config = ConfigDict(populate_by_name=True)

    issue_key: str = Field(..., alias="issueKey", min_length=1, description="Jira issue key, e.g. PROJ-1")
    new_description: str = Field(..., alias="newDescription", description="Text that replaces the whole description")


class InstallPayloadError(Exception):
    """Raised when a lifecycle payload lacks the tenant credentials."""
    pass


def error_response(status_code: int, message: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def build_descriptor(config) -> Dict[str, Any]:
    """Atlassian Connect app descriptor for this deployment."""
    return {
        "key": config.APP_KEY,
        "name": config.APP_NAME,
        "description": "Turns vague Jira issue descriptions into structured, actionable reports with Gemini",
        "baseUrl": config.APP_BASE_URL,
        "vendor": {"name": "AAVA", "url": config.APP_BASE_URL},
        "authentication": {"type": "jwt"},
        "lifecycle": {
            "installed": "/installed",
            "uninstalled": "/uninstalled",
        },
        "apiVersion": 1,
        "version": __version__,
        "scopes": ["READ", "WRITE"],
        "modules": {
            "webPanels": [
                {
                    "key": "aava-refiner-panel",
                    "location": "atl.jira.view.issue.right.context",
                    "name": {"value": "AAVA Description Refiner"},
                    "url": "/render-panel?issueKey={issue.key}",
                }
            ],
            "dialogs": [
                {
                    "key": "aava-refiner-dialog",
                    "name": {"value": "Refine Description"},
                    "url": "/render-refiner?issueKey={issue.key}",
                    "options": {"size": "large", "chrome": True},
                }
            ],
        },
    }


@router.get("/health", response_class=PlainTextResponse)
async def health():
    """Liveness check."""
    return HEALTH_MESSAGE


@router.get("/atlassian-connect.json")
async def descriptor(request: Request):
    """Serve the app descriptor Jira reads at install time."""
    return build_descriptor(request.app.state.config)


@router.post("/installed")
async def installed(request: Request):
    """
    Install lifecycle callback.

    A first install is accepted as-is. A re-install for a clientKey that is
    already stored must be signed with the stored shared secret, so a third
    party cannot replace a tenant's secret.
    """
    store = request.app.state.credential_store
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise InstallPayloadError("Install payload must be a JSON object")
        try:
            tenant = TenantCredentials.model_validate(payload)
        except ValidationError as e:
            missing = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise InstallPayloadError(f"Install payload missing or invalid fields: {missing}")
    except InstallPayloadError as e:
        logger.warning(f"Rejected install (request_id={_request_id(request)}): {str(e)}")
        return error_response(400, str(e))
    except ValueError as e:
        return error_response(400, f"Install payload is not valid JSON: {str(e)}")

    if store.get(tenant.client_key) is not None:
        try:
            context = request.app.state.authenticator.authenticate(request)
        except ConnectAuthError as e:
            logger.warning(f"Rejected re-install for {tenant.client_key}: {str(e)}")
            return error_response(401, f"Authentication failed: {str(e)}")
        if context.client_key != tenant.client_key:
            return error_response(401, "Authentication failed: token issuer does not match clientKey")

    store.save(tenant)
    logger.info(f"Installed on {tenant.base_url} (tenant={tenant.client_key})")
    return {"success": True}


@router.post("/uninstalled")
async def uninstalled(request: Request, context: ConnectContext = Depends(require_connect_jwt)):
    """Uninstall lifecycle callback: forget the tenant."""
    request.app.state.credential_store.delete(context.client_key)
    logger.info(f"Uninstalled from {context.tenant.base_url} (tenant={context.client_key})")
    return {"success": True}


@router.get("/render-panel")
async def render_panel(context: ConnectContext = Depends(require_connect_jwt)):
    """Jira issue panel with the refine button."""
    return FileResponse(PUBLIC_DIR / "panel.html", media_type="text/html")


@router.get("/render-refiner")
async def render_refiner(context: ConnectContext = Depends(require_connect_jwt)):
    """Refiner dialog content."""
    return FileResponse(PUBLIC_DIR / "index.html", media_type="text/html")


@router.post("/enhance-description")
def enhance_description(
    body: EnhanceDescriptionRequest,
    request: Request,
    context: ConnectContext = Depends(require_connect_jwt_ajax),
):
    """
    Enhance an issue description with Gemini.

    Prompt -> Gemini -> strip fence and parse -> formatted JSON string.
    """
    config = request.app.state.config
    request_id = _request_id(request)

    try:
        template = get_template(config.PROMPT_TEMPLATE)
        prompt_text = build_prompt(body.current_description, template)
        raw_text = request.app.state.gemini_client.enhance(prompt_text, build_generation_config(template))
        enhanced = normalize(raw_text, validate=config.STRICT_REPORT_VALIDATION)
    except GeminiConfigError as e:
        logger.error(f"Gemini config error (request_id={request_id}): {str(e)}")
        return error_response(500, str(e))
    except GeminiClientError as e:
        logger.error(f"Gemini error (request_id={request_id}, tenant={context.client_key}): {str(e)}")
        return error_response(500, str(e))
    except ResponseFormatError as e:
        logger.error(f"Gemini returned unparseable report (request_id={request_id}): {str(e)}")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Enhancement failed (request_id={request_id}): {str(e)}", exc_info=True)
        return error_response(500, str(e) or type(e).__name__)

    logger.info(f"Gemini returned valid JSON (request_id={request_id}, tenant={context.client_key})")
    return {"success": True, "enhancedDescription": enhanced}


@router.put("/update-description")
def update_description(
    body: UpdateDescriptionRequest,
    request: Request,
    context: ConnectContext = Depends(require_connect_jwt_ajax),
):
    """Overwrite the issue description in Jira."""
    request_id = _request_id(request)

    try:
        jira_client = JiraClient(context.tenant, request.app.state.config.APP_KEY)
        jira_client.update_description(body.issue_key, body.new_description)
    except JiraClientError as e:
        logger.error(f"Jira update error (request_id={request_id}, issue={body.issue_key}, tenant={context.client_key})")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Jira update failed (request_id={request_id}): {str(e)}", exc_info=True)
        return error_response(500, str(e) or type(e).__name__)

    return {"success": True}


@router.get("/issue-description")
def issue_description(
    issueKey: str,
    request: Request,
    context: ConnectContext = Depends(require_connect_jwt_skip_qsh),
):
    """Current description of an issue as plain text, for prefilling the refiner."""
    request_id = _request_id(request)

    try:
        jira_client = JiraClient(context.tenant, request.app.state.config.APP_KEY)
        description = jira_client.get_description(issueKey)
    except JiraClientError as e:
        logger.error(f"Jira read error (request_id={request_id}, issue={issueKey}, tenant={context.client_key})")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Jira read failed (request_id={request_id}): {str(e)}", exc_info=True)
        return error_response(500, str(e) or type(e).__name__)

    return {"success": True, "description": description}
