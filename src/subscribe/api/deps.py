"""FastAPI dependencies for dependency injection."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from subscribe.config import Settings
from subscribe.services.csrf import CSRFGuard
from subscribe.services.mailing_list import MailingList
from subscribe.services.pipeline import SubmissionPipeline
from subscribe.services.rate_limit import SlidingWindowRateLimiter, get_client_ip
from subscribe.services.tokens import TokenStore
from subscribe.services.workflow import ConfirmationWorkflow
from subscribe.strings import UIStrings, determine_language, get_strings
from subscribe.urls import join_paths


@dataclass
class AppServices:
    """Per-application state. Each app (and each test) gets its own."""

    settings: Settings
    ui_strings: dict[str, UIStrings]
    token_store: TokenStore
    rate_limiter: SlidingWindowRateLimiter
    csrf: CSRFGuard
    mailing_list: MailingList
    workflow: ConfirmationWorkflow
    pipeline: SubmissionPipeline

    def path(self, *segments: str) -> str:
        """Path under the configured base path."""
        return join_paths(self.settings.base_path, *segments)

    def strings(self, lang: str) -> UIStrings:
        return get_strings(self.ui_strings, lang)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_language(request: Request) -> str:
    return determine_language(request.headers.get("accept-language"))


ServicesDep = Annotated[AppServices, Depends(get_services)]
LanguageDep = Annotated[str, Depends(get_language)]
ClientIdentityDep = Annotated[str, Depends(get_client_ip)]
