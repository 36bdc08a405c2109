"""Pytest configuration and shared fixtures for the FunPay client test suite.

This module provides hermetic test infrastructure with the following guarantees:
- No external network requests (HTTP mocked with `responses`)
- Isolated state (fresh Session per test, config cache cleared)

Design Rationale:
    Factory fixtures over static fixtures enable dynamic test case generation
    without code duplication. The mock_config fixture overrides the singleton
    GlobalConfig to prevent state leakage between tests.
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import responses

from config.settings import GlobalConfig
from funpay.client import Funpay
from funpay.session import Session

BASE_URL = "https://funpay.com"
GOLDEN_KEY = "test-golden-key"
USER_AGENT = "test-agent/1.0"


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Overrides the lru_cache singleton to prevent state leakage between tests.
    Uses tmp_path for all file operations to avoid polluting the filesystem.

    Args:
        tmp_path: Pytest temporary directory fixture.
        monkeypatch: Pytest monkeypatch fixture for patching.

    Returns:
        GlobalConfig instance with test-safe defaults.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    test_env = {
        "APP_NAME": "FunPay-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "BASE_URL": BASE_URL,
        "GOLDEN_KEY": GOLDEN_KEY,
        "USER_AGENT": USER_AGENT,
        "PROXY": "",
        "LOCALE": "",
        "REQUEST_TIMEOUT_SEC": "5",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def session() -> Session:
    """Provide a fresh unauthenticated Session."""
    return Session(golden_key=GOLDEN_KEY, user_agent=USER_AGENT, base_url=BASE_URL)


@pytest.fixture
def fp(session: Session) -> Funpay:
    """Provide a Funpay client bound to the session fixture."""
    client = Funpay(session)
    yield client
    client.close()


@pytest.fixture
def mocked_responses() -> responses.RequestsMock:
    """Activate `responses` for the duration of a test."""
    with responses.RequestsMock() as rsps:
        yield rsps


def app_data_attr(app_data: dict[str, Any] | None) -> str:
    """Render the data-app-data attribute, or nothing for None."""
    if app_data is None:
        return ""
    return f"data-app-data='{json.dumps(app_data)}'"


@pytest.fixture
def page_factory() -> Callable[..., str]:
    """Factory fixture for generic FunPay pages.

    Example:
        def test_update(page_factory):
            html = page_factory(app_data={"userId": 1}, content="<p>hi</p>")
    """

    def _generate_page(
        app_data: dict[str, Any] | None = None,
        content: str = "",
        raw_app_data: str | None = None,
    ) -> str:
        attr = f"data-app-data='{raw_app_data}'" if raw_app_data is not None else app_data_attr(app_data)
        return f"""
        <!DOCTYPE html>
        <html>
        <head><title>FunPay</title></head>
        <body {attr}>
            {content}
        </body>
        </html>
        """

    return _generate_page


@pytest.fixture
def home_page_factory(page_factory: Callable[..., str]) -> Callable[..., str]:
    """Factory fixture for the home page with the account header."""

    def _generate_home(
        user_id: int = 123,
        csrf_token: str = "test-csrf",
        locale: str = "ru",
        username: str | None = "testuser",
        balance: str | None = "541 ₽",
    ) -> str:
        header = ""
        if username is not None:
            header += f'<div class="user-link-name">{username}</div>'
        if balance is not None:
            header += f'<span class="badge badge-balance">{balance}</span>'
        return page_factory(
            app_data={"userId": user_id, "csrf-token": csrf_token, "locale": locale},
            content=header,
        )

    return _generate_home


@pytest.fixture
def profile_page_factory(page_factory: Callable[..., str]) -> Callable[..., str]:
    """Factory fixture for a user profile page with offer blocks.

    Each offer is (category_href, [item_href, ...]).
    """

    def _generate_profile(
        offers: list[tuple[str, list[str]]],
        app_data: dict[str, Any] | None = None,
    ) -> str:
        blocks = []
        for node_href, item_hrefs in offers:
            items = "".join(
                f'<a class="tc-item" href="{href}"><div class="tc-desc">Lot</div></a>'
                for href in item_hrefs
            )
            blocks.append(
                f"""
                <div class="offer">
                    <div class="offer-list-title-container">
                        <h3><a href="{node_href}">Category</a></h3>
                    </div>
                    <div class="offer-tc-container">{items}</div>
                </div>
                """
            )
        return page_factory(
            app_data=app_data or {"userId": 123, "csrf-token": "test-csrf", "locale": "ru"},
            content="".join(blocks),
        )

    return _generate_profile


@pytest.fixture
def edit_form_html() -> str:
    """Realistic /lots/offerEdit form."""
    return """
    <form action="/lots/offerSave" method="post" class="form-offer-editor">
        <input type="hidden" name="csrf_token" value="form-csrf">
        <input type="hidden" name="offer_id" value="456">
        <input type="hidden" name="node_id" value="81">
        <input type="text" name="fields[summary][ru]" value="Gold coins">
        <input type="text" name="price">
        <input type="checkbox" name="active" checked>
        <input type="checkbox" name="deactivate_after_sale">
        <textarea name="fields[desc][ru]">Fast delivery</textarea>
        <select name="fields[server]">
            <option value="">Choose</option>
            <option value="eu">Europe</option>
            <option value="us" selected>America</option>
            <option>No value</option>
        </select>
    </form>
    <form action="/other"><input name="ignored" value="x"></form>
    """


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers and settings.

    Args:
        config: Pytest config object.
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring full stack",
    )
