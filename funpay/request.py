"""Request pipeline for FunPay.

This module sends one HTTP request on behalf of a Session:
- Resolves the proxy (per-call override, then session proxy, then direct)
- Rewrites the URL for the session locale
- Attaches extra cookies, session cookies and the golden_key cookie
- Sends the session User-Agent like a regular browser
- Replaces the session cookies with the response cookies, on every
  response including error statuses, so anti-bot cookie challenges
  carry over to the next call
- Maps the status code onto the client's exception hierarchy

Design Rationale:
    The FunPay Session is the only cookie store. Every response replaces
    it wholesale, and the requests.Session cookie jars are disabled.
    Outgoing cookies are domain-scoped: the golden_key cookie belongs to
    the site domain and cookies without a Domain attribute belong to the
    requested host, so a redirect to another host never carries them.

Concurrency:
    execute() is safe to call from several threads at once. Every thread
    (callers and cancellation workers alike) sends through its own
    requests.Session. No ordering holds between concurrent calls;
    whichever response arrives last overwrites the shared cookies.
"""

import concurrent.futures
import threading
from http.cookiejar import DefaultCookiePolicy, parse_ns_headers
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from bs4 import BeautifulSoup
from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict

from funpay.appdata import sync_app_data
from funpay.exceptions import (
    BadStatusError,
    ForbiddenError,
    FunpayError,
    RateLimitError,
    RequestCancelledError,
    TransportError,
)
from funpay.extractor import parse_html
from funpay.locale import is_primary
from funpay.logger import get_logger
from funpay.models import CookieRecord, RequestOptions
from funpay.session import Session

log = get_logger(__name__)

DOMAIN = "funpay.com"
GOLDEN_KEY_COOKIE = "golden_key"
LOCALE_QUERY_PARAM = "setlocale"
USER_AGENT_HEADER = "User-Agent"

DEFAULT_TIMEOUT_SEC = 60.0

# How often an in-flight request checks its cancel event.
CANCEL_POLL_INTERVAL_SEC = 0.05

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"

# Headers the site's own scripts send with form posts.
POST_HEADERS = {
    "Accept": "*/*",
    "Content-Type": FORM_CONTENT_TYPE,
    "X-Requested-With": "XMLHttpRequest",
}


def localize_url(
    url: str,
    locale: str | None,
    method: str = "GET",
    update_locale: bool = False,
) -> str:
    """Apply the locale to a request URL.

    With update_locale the locale travels as ?setlocale=<code> and the
    path is left alone. Otherwise GET requests in a non-primary locale
    get a /<code> path prefix ("/path" -> "/en/path", "" -> "/en/").
    Other methods and the primary locale leave the URL unchanged.

    Raises:
        ValueError: If the URL cannot be parsed.
    """
    parts = urlsplit(url)

    if update_locale:
        if not locale:
            return url
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != LOCALE_QUERY_PARAM]
        query.append((LOCALE_QUERY_PARAM, locale))
        return urlunsplit(parts._replace(query=urlencode(query)))

    if method != "GET" or is_primary(locale):
        return url

    path = parts.path or "/"
    if not path.startswith("/"):
        path = f"/{path}"

    return urlunsplit(parts._replace(path=f"/{locale}{path}"))


def golden_key_cookie(golden_key: str, domain: str = DOMAIN) -> CookieRecord:
    """Build the authentication cookie for a credential, scoped to .<domain>."""
    return CookieRecord(
        name=GOLDEN_KEY_COOKIE,
        value=golden_key,
        domain=f".{domain.lstrip('.')}",
        path="/",
        secure=True,
        http_only=True,
    )


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def cookies_from_response(response: requests.Response) -> list[CookieRecord]:
    """Read every Set-Cookie header of the response, in order.

    Headers are parsed leniently, the way browsers do: values with
    spaces or other characters outside the cookie grammar are kept.
    Expired (deletion) cookies are kept too, so the session mirrors
    exactly what the server sent. Only headers without a cookie name
    are skipped.
    """
    headers = getattr(response.raw, "headers", None)
    if headers is None or not hasattr(headers, "getlist"):
        return [
            CookieRecord(
                name=c.name,
                value=c.value or "",
                domain=c.domain,
                path=c.path or "/",
                secure=c.secure,
                http_only=c.has_nonstandard_attr("HttpOnly"),
            )
            for c in response.cookies
        ]

    records: list[CookieRecord] = []
    for header in headers.getlist("Set-Cookie"):
        parsed = parse_ns_headers([header])
        if not parsed:
            log.debug("Set-Cookie header without a cookie name skipped", url=response.url)
            continue

        (name, value), *attributes = parsed[0]
        attrs = {key.lower(): attr for key, attr in attributes}
        records.append(
            CookieRecord(
                name=name,
                value=_unquote(value or ""),
                domain=attrs.get("domain") or "",
                path=attrs.get("path") or "/",
                secure="secure" in attrs,
                http_only="httponly" in attrs,
            )
        )

    return records


class RequestPipeline:
    """Executes requests against FunPay for one Session.

    Attributes:
        session: Session providing credentials and receiving cookies.
        timeout: Default request timeout in seconds.

    Example:
        pipeline = RequestPipeline(session)
        response = pipeline.execute("https://funpay.com/")
        document = pipeline.request_html("https://funpay.com/users/1/")
    """

    def __init__(self, session: Session, timeout: float = DEFAULT_TIMEOUT_SEC) -> None:
        self.session = session
        self.timeout = timeout

        self._local = threading.local()
        self._http_sessions: list[requests.Session] = []
        self._http_lock = threading.Lock()

        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def execute(self, url: str, options: RequestOptions | None = None) -> requests.Response:
        """Send one request and update the session from the response.

        Args:
            url: Absolute target URL.
            options: Per-call options; defaults to a plain GET.

        Returns:
            The 2xx response.

        Raises:
            TransportError: If the URL is invalid or the network call fails.
                Session cookies are left untouched.
            RequestCancelledError: If the cancel event is set or the
                timeout expires. Session cookies are left untouched.
            ForbiddenError: On HTTP 403.
            RateLimitError: On HTTP 429.
            BadStatusError: On any other non-2xx status.
            UnauthorizedError: If update_app_data is set and the page is anonymous.
            MalformedAppDataError: If update_app_data is set and AppData is invalid.

        Every status error carries the response on ``exc.response``.
        """
        options = options or RequestOptions()

        proxy = options.proxy or self.session.proxy
        locale = options.locale or self.session.locale

        try:
            target = localize_url(url, locale, options.method, options.update_locale)
        except ValueError as exc:
            raise TransportError(url=url, reason=str(exc)) from exc

        request = requests.Request(
            method=options.method,
            url=target,
            headers=self._build_headers(options.headers),
            cookies=self._build_cookie_jar(options.cookies, target),
            data=options.body,
        )

        try:
            prepared = self._get_http().prepare_request(request)
        except (requests.RequestException, ValueError) as exc:
            raise TransportError(url=target, reason=str(exc)) from exc

        log.debug("Sending request", method=options.method, url=target, proxy=bool(proxy))

        response = self._send(prepared, proxy, options)

        self.session.set_cookies(cookies_from_response(response))

        self._raise_for_status(response)

        log.debug(
            "Request completed",
            method=options.method,
            url=target,
            status_code=response.status_code,
        )

        if options.update_app_data:
            self._sync_app_data(response)

        return response

    def request_html(self, url: str, options: RequestOptions | None = None) -> BeautifulSoup:
        """Fetch an authenticated page and synchronize its AppData.

        Returns:
            The parsed page.

        Raises:
            Everything execute() raises with update_app_data set.
        """
        options = (options or RequestOptions()).model_copy(update={"update_app_data": False})
        response = self.execute(url, options)
        return self._sync_app_data(response)

    def close(self) -> None:
        """Release pooled connections and the cancellation worker threads."""
        with self._http_lock:
            http_sessions, self._http_sessions = self._http_sessions, []
        for http in http_sessions:
            http.close()

        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def _build_headers(self, extra: dict[str, str]) -> CaseInsensitiveDict:
        headers = CaseInsensitiveDict({USER_AGENT_HEADER: self.session.user_agent})
        for name, value in extra.items():
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
        return headers

    def _get_http(self) -> requests.Session:
        """Return the calling thread's requests.Session, creating it on first use."""
        http = getattr(self._local, "http", None)
        if http is None:
            http = requests.Session()
            http.trust_env = False
            http.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
            self._local.http = http
            with self._http_lock:
                self._http_sessions.append(http)
        return http

    def _send_on_worker(self, prepared: requests.PreparedRequest, **kwargs: object) -> requests.Response:
        return self._get_http().send(prepared, **kwargs)

    def _build_cookie_jar(self, extra: list[CookieRecord], url: str) -> RequestsCookieJar:
        """Collect extra, session and golden_key cookies in that order.

        A later cookie with the same name replaces an earlier one, whatever
        its domain. The golden_key cookie is scoped to the base URL's domain
        and cookies without a domain to the host of url.
        """
        host = urlsplit(url).hostname or ""
        site = urlsplit(self.session.base_url).hostname or DOMAIN

        merged: dict[str, CookieRecord] = {}
        for cookie in [*extra, *self.session.cookies, golden_key_cookie(self.session.golden_key, site)]:
            merged[cookie.name] = cookie

        jar = RequestsCookieJar()
        for cookie in merged.values():
            jar.set(
                cookie.name,
                cookie.value,
                domain=cookie.domain or host,
                path=cookie.path or "/",
                secure=cookie.secure,
                rest={"HttpOnly": None} if cookie.http_only else {},
            )
        return jar

    def _send(
        self,
        prepared: requests.PreparedRequest,
        proxy: str | None,
        options: RequestOptions,
    ) -> requests.Response:
        url = prepared.url or ""
        timeout = options.timeout or self.timeout
        proxies = {"http": proxy, "https": proxy} if proxy else {}

        if options.cancel is not None and options.cancel.is_set():
            raise RequestCancelledError(url=url, reason="cancelled before sending")

        try:
            if options.cancel is None:
                return self._get_http().send(
                    prepared, proxies=proxies, timeout=timeout, allow_redirects=True
                )
            return self._send_cancellable(prepared, proxies, timeout, options.cancel)
        except requests.Timeout as exc:
            raise RequestCancelledError(url=url, reason=f"timed out after {timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportError(url=url, reason=str(exc)) from exc

    def _send_cancellable(
        self,
        prepared: requests.PreparedRequest,
        proxies: dict[str, str],
        timeout: float,
        cancel: threading.Event,
    ) -> requests.Response:
        """Run the network call on a worker thread and watch the cancel event.

        On cancellation the worker is left to finish in the background and
        its response is discarded.
        """
        future = self._get_executor().submit(
            self._send_on_worker, prepared, proxies=proxies, timeout=timeout, allow_redirects=True
        )

        while True:
            try:
                return future.result(timeout=CANCEL_POLL_INTERVAL_SEC)
            except concurrent.futures.TimeoutError:
                if cancel.is_set():
                    future.cancel()
                    raise RequestCancelledError(url=prepared.url or "", reason="cancelled") from None

    def _get_executor(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    thread_name_prefix="funpay-request"
                )
            return self._executor

    def _raise_for_status(self, response: requests.Response) -> None:
        status_code = response.status_code
        if 200 <= status_code <= 299:
            return

        log.warning("Unexpected response status", url=response.url, status_code=status_code)

        if status_code == 403:
            raise ForbiddenError(response)
        if status_code == 429:
            raise RateLimitError(response)
        raise BadStatusError(response)

    def _sync_app_data(self, response: requests.Response) -> BeautifulSoup:
        content_type = response.headers.get("Content-Type", "").lower()
        encoding = response.encoding if "charset=" in content_type else None

        try:
            document = parse_html(response.content, url=response.url, encoding=encoding)
            sync_app_data(self.session, document)
        except FunpayError as exc:
            exc.response = response
            raise

        return document
