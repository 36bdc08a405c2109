"""AppData synchronization.

Every page FunPay renders for a logged-in user carries a JSON object in
<body data-app-data='...'> with the CSRF token, the user id and the
locale. Reading it after each authenticated request keeps the Session
identity current and is how a successful login is detected.
"""

import json

from bs4 import BeautifulSoup
from pydantic import ValidationError

from funpay.exceptions import MalformedAppDataError, UnauthorizedError
from funpay.logger import get_logger
from funpay.models import AppData
from funpay.session import Session

log = get_logger(__name__)

APP_DATA_ATTRIBUTE = "data-app-data"


def sync_app_data(session: Session, document: BeautifulSoup) -> AppData:
    """Copy the page AppData into the session.

    The identity fields are written before the user id is checked, so a
    rejected login still leaves the fresh CSRF token and locale on the
    session.

    Args:
        session: Session to update.
        document: Parsed page.

    Returns:
        The decoded AppData.

    Raises:
        UnauthorizedError: If the attribute is missing or userId is 0.
        MalformedAppDataError: If the attribute is not a valid AppData JSON object.
    """
    body = document.find("body")
    raw = body.get(APP_DATA_ATTRIBUTE) if body is not None else None
    if raw is None:
        raise UnauthorizedError(reason="page has no app data")

    try:
        app_data = AppData.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise MalformedAppDataError(raw=raw, reason=str(exc)) from exc

    session.update_identity(
        csrf_token=app_data.csrf_token,
        user_id=app_data.user_id,
        locale=app_data.locale,
    )

    if app_data.user_id == 0:
        raise UnauthorizedError(reason="app data has no user id")

    log.debug("App data synchronized", user_id=app_data.user_id, locale=app_data.locale)
    return app_data
