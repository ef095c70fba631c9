"""Diagnostic and static endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from subscribe.api.deps import LanguageDep, ServicesDep
from subscribe.api.utils import message_response, server_error_response

router = APIRouter()

ROBOTS_TXT = "User-agent: *\nDisallow: /"


@router.get("/tokens", response_class=HTMLResponse)
async def tokens(request: Request, services: ServicesDep, lang: LanguageDep):
    """Report how many live tokens are held in memory."""
    try:
        count = services.token_store.count()
        return message_response(
            services, lang, 200, "info", "tokens", count=str(count)
        )
    except Exception as e:
        return server_error_response(services, lang, request, e)


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt():
    """Keep crawlers away from the form and confirmation links."""
    return PlainTextResponse(ROBOTS_TXT)
