"""Pydantic models shared by the session, request and extraction layers.

Design Rationale:
    Every value that crosses a module boundary is a validated model rather
    than a loose dict: cookies, AppData, listing form fields and request
    options. Field values stay string-typed, exactly as the site serves
    them; no richer typing is inferred.
"""

import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CookieRecord(BaseModel):
    """A single HTTP cookie as stored on the Session.

    Frozen so that copies handed out by the Session cannot be used to
    mutate its internal state.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""
    domain: str = ""
    path: str = "/"
    secure: bool = False
    http_only: bool = False


class AppData(BaseModel):
    """JSON object from the data-app-data attribute of <body>.

    All fields are optional; a missing userId decodes as 0, which means
    the page was rendered for an anonymous visitor.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    csrf_token: str = Field(default="", alias="csrf-token")
    user_id: int = Field(default=0, alias="userId")
    locale: str | None = Field(default=None, alias="locale")

    @field_validator("csrf_token", mode="before")
    @classmethod
    def null_token(cls, value: Any) -> Any:
        """Decode an explicit JSON null token as empty."""
        return "" if value is None else value

    @field_validator("user_id", mode="before")
    @classmethod
    def null_user(cls, value: Any) -> Any:
        """Decode an explicit JSON null user id as anonymous."""
        return 0 if value is None else value

    @field_validator("locale", mode="before")
    @classmethod
    def empty_locale(cls, value: Any) -> Any:
        """Treat an empty locale code as the primary locale."""
        return None if value == "" else value


class LotField(BaseModel):
    """One named control of the listing edit form.

    Attributes:
        value: Current value as it would be submitted.
        variants: Allowed values; empty for free-text controls.
    """

    value: str = ""
    variants: list[str] = Field(default_factory=list)


# Field name -> field, as read from the listing edit form.
LotFields = dict[str, LotField]

# Node (category) id -> offer ids in document order.
LotIndex = dict[str, list[str]]


class RequestOptions(BaseModel):
    """Per-call options for RequestPipeline.execute.

    Attributes:
        method: HTTP method.
        body: Raw request body.
        cookies: Extra cookies sent before the session cookies.
        headers: Extra headers; never replace the default User-Agent.
        proxy: Proxy URL overriding the session proxy for this call.
        locale: Locale overriding the session locale for this call.
        update_locale: Send the locale as ?setlocale=<code> instead of a
            path prefix. Used only by the locale-change operation.
        update_app_data: Parse the response body and synchronize AppData
            into the session.
        timeout: Seconds before the call is abandoned. None uses the
            pipeline default.
        cancel: Event that abandons the call when set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: str = "GET"
    body: str | bytes | None = None
    cookies: list[CookieRecord] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    proxy: str | None = None
    locale: str | None = None
    update_locale: bool = False
    update_app_data: bool = False
    timeout: float | None = Field(default=None, gt=0)
    cancel: threading.Event | None = None

    @field_validator("method")
    @classmethod
    def upper_method(cls, value: str) -> str:
        """Normalize the HTTP method to upper case."""
        return value.upper()
