"""Account-level operations on top of the request pipeline.

Funpay ties a Session to a RequestPipeline and implements the account
operations the site offers: refreshing identity and balance, and
switching the site locale.
"""

import threading
from typing import Self

import requests
from bs4 import BeautifulSoup

from config.settings import GlobalConfig, get_config
from funpay.extractor import extract_balance, extract_username
from funpay.logger import get_logger
from funpay.models import CookieRecord, RequestOptions
from funpay.request import RequestPipeline
from funpay.session import Session

log = get_logger(__name__)


class Funpay:
    """FunPay account client.

    Example:
        fp = Funpay.from_config()
        fp.update()
        print(fp.user_id, fp.username, fp.balance)
    """

    def __init__(self, session: Session, pipeline: RequestPipeline | None = None) -> None:
        self.session = session
        self.pipeline = pipeline or RequestPipeline(session)

    @classmethod
    def from_config(cls, config: GlobalConfig | None = None) -> Self:
        """Build a client from GlobalConfig.

        Args:
            config: Optional GlobalConfig. Uses singleton if not provided.
        """
        if config is None:
            config = get_config()

        session = Session(
            golden_key=config.golden_key.get_secret_value(),
            user_agent=config.user_agent,
            base_url=config.base_url,
            proxy=config.proxy,
            locale=config.locale,
        )
        return cls(session, RequestPipeline(session, timeout=config.request_timeout_sec))

    def request(self, url: str, options: RequestOptions | None = None) -> requests.Response:
        """Send a request with the account credentials. See RequestPipeline.execute."""
        return self.pipeline.execute(url, options)

    def request_html(self, url: str, options: RequestOptions | None = None) -> BeautifulSoup:
        """Fetch an authenticated page. See RequestPipeline.request_html."""
        return self.pipeline.request_html(url, options)

    def update(self, cancel: threading.Event | None = None) -> None:
        """Reload account info from the home page.

        Refreshes cookies, CSRF token, user id and locale (AppData), then
        username and balance from the page header. Call every 40-60 minutes
        to keep the session cookies fresh.

        Raises:
            UnauthorizedError: If the golden key is rejected.
            MalformedDocumentError: If the page cannot be parsed.
            FunpayError: Any other request failure.
        """
        document = self.request_html(self.base_url, RequestOptions(cancel=cancel))

        username = extract_username(document)
        balance = extract_balance(document)
        self.session.update_profile(username=username, balance=balance)

        log.info(
            "Account updated",
            user_id=self.session.user_id,
            username=username,
            balance=balance,
        )

    def update_locale(self, locale: str, cancel: threading.Event | None = None) -> None:
        """Switch the account to another site locale.

        Sends ?setlocale=<code> to the home page and, on success, stores
        the locale on the session so later requests are rewritten for it.
        """
        response = self.request(
            self.base_url,
            RequestOptions(locale=locale, update_locale=True, cancel=cancel),
        )
        response.close()

        self.session.set_locale(locale)
        log.info("Locale updated", locale=locale)

    def close(self) -> None:
        self.pipeline.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def base_url(self) -> str:
        return self.session.base_url

    @property
    def user_id(self) -> int:
        return self.session.user_id

    @property
    def username(self) -> str:
        return self.session.username

    @property
    def balance(self) -> float:
        return self.session.balance

    @property
    def csrf_token(self) -> str:
        return self.session.csrf_token

    @property
    def locale(self) -> str | None:
        return self.session.locale

    @property
    def cookies(self) -> list[CookieRecord]:
        return self.session.cookies

    def set_proxy(self, proxy: str | None) -> None:
        self.session.set_proxy(proxy)
