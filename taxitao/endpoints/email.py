import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from taxitao.core.http_client import TransportDep
from taxitao.models.email import SendEmail
from taxitao.services.email_service import send_email, EmailNotConfigured, EmailProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Email"])


@router.post("/send-email")
async def send_email_route(request: Request, transport: TransportDep):
    missing = JSONResponse(
        {"error": "Missing required fields: to, subject, html"},
        status_code=status.HTTP_400_BAD_REQUEST
    )
    try:
        body = SendEmail.model_validate(await request.json())

        if not body.to or not body.subject or not body.html:
            return missing

        result = await send_email(body.to, body.subject, body.html, transport=transport)
        return {"success": True, "id": result.get("id")}

    except ValidationError:
        return missing
    except EmailNotConfigured:
        return JSONResponse(
            {"error": "Email service not configured"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    except EmailProviderError as e:
        return JSONResponse(
            {"error": "Failed to send email", "details": e.details},
            status_code=e.status_code
        )
    except Exception:
        logger.exception("Error in send-email API")
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
