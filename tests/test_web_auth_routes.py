"""
Farmer Market - Login / Logout Flow Tests
End-to-end through the real route table with the SQL session store.
"""

import re

import pytest

from conftest import make_client
from app.database import SessionLocal
from app.main import build_router, create_app
from Security.session_store import SqlSessionStore


@pytest.fixture
def market_app(db_tables):
    router = build_router(store=SqlSessionStore(SessionLocal), session_factory=SessionLocal)
    return create_app(router, purge_minutes=0)


def hidden_csrf(html: str) -> str:
    match = re.search(r'name="csrf_token" value="([^"]+)"', html)
    assert match, "page has no csrf_token field"
    return match.group(1)


async def login(client, role, email, password):
    page = await client.get(f"/{role}/login")
    assert page.status_code == 200
    token = hidden_csrf(page.text)
    return await client.post(
        f"/{role}/login",
        data={"csrf_token": token, "email": email, "password": password},
    )


# =============================================================================
# Login
# =============================================================================

@pytest.mark.anyio
async def test_login_page_issues_matching_csrf_cookie(market_app):
    async with make_client(market_app) as client:
        page = await client.get("/buyer/login")
    assert page.status_code == 200
    assert hidden_csrf(page.text) == client.cookies.get("csrf_token")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "role,email,password,landing",
    [
        ("admin", "admin@market.test", "admin-pass", "/admin/dashboard"),
        ("farmer", "farmer@market.test", "farmer-pass", "/farmer/dashboard"),
        ("buyer", "buyer@market.test", "buyer-pass", "/buyer/home"),
    ],
)
async def test_login_redirects_to_landing_page(market_app, seeded_users, role, email, password, landing):
    async with make_client(market_app) as client:
        response = await login(client, role, email, password)
        assert response.status_code == 303
        assert response.headers["location"] == landing
        set_cookie = response.headers["set-cookie"].lower()
        assert "session_token=" in set_cookie
        assert "httponly" in set_cookie

        page = await client.get(landing)
    assert page.status_code == 200
    assert f'<span id="role">{role}</span>' in page.text


@pytest.mark.anyio
async def test_login_requires_csrf_token(market_app, seeded_users):
    async with make_client(market_app) as client:
        response = await client.post(
            "/buyer/login",
            data={"email": "buyer@market.test", "password": "buyer-pass"},
        )
    assert response.status_code == 403
    assert "session_token" not in client.cookies


@pytest.mark.anyio
async def test_wrong_password_rerenders_with_401(market_app, seeded_users):
    async with make_client(market_app) as client:
        response = await login(client, "buyer", "buyer@market.test", "nope")
    assert response.status_code == 401
    assert "Invalid credentials" in response.text
    assert "session_token" not in client.cookies


@pytest.mark.anyio
async def test_login_is_scoped_to_role(market_app, seeded_users):
    async with make_client(market_app) as client:
        response = await login(client, "farmer", "buyer@market.test", "buyer-pass")
    assert response.status_code == 401


@pytest.mark.anyio
async def test_pending_farmer_cannot_log_in(market_app, seeded_users):
    async with make_client(market_app) as client:
        response = await login(client, "farmer", "new-farmer@market.test", "pending-pass")
    assert response.status_code == 401


# =============================================================================
# Protected pages
# =============================================================================

@pytest.mark.anyio
async def test_protected_pages_need_session(market_app):
    async with make_client(market_app) as client:
        for path in ("/admin/dashboard", "/farmer/dashboard", "/buyer/home", "/admin/metrics"):
            response = await client.get(path)
            assert response.status_code == 401, path


@pytest.mark.anyio
async def test_browser_gets_html_error_page(market_app):
    async with make_client(market_app) as client:
        response = await client.get("/admin/dashboard", headers={"Accept": "text/html"})
    assert response.status_code == 401
    assert "text/html" in response.headers["content-type"]
    assert "Authentication required" in response.text


@pytest.mark.anyio
async def test_buyer_cannot_reach_admin_or_farmer_pages(market_app, seeded_users):
    async with make_client(market_app) as client:
        await login(client, "buyer", "buyer@market.test", "buyer-pass")
        admin = await client.get("/admin/dashboard")
        farmer = await client.get("/farmer/dashboard")
    assert admin.status_code == 403
    assert farmer.status_code == 403


@pytest.mark.anyio
async def test_admin_can_open_farmer_dashboard_and_metrics(market_app, seeded_users):
    async with make_client(market_app) as client:
        await login(client, "admin", "admin@market.test", "admin-pass")
        farmer = await client.get("/farmer/dashboard")
        metrics = await client.get("/admin/metrics")
    assert farmer.status_code == 200
    assert metrics.status_code == 200
    assert "marketplace_auth_events_total" in metrics.text


@pytest.mark.anyio
async def test_responses_carry_request_id(market_app):
    async with make_client(market_app) as client:
        generated = await client.get("/buyer/login")
        echoed = await client.get("/buyer/login", headers={"x-request-id": "req-123"})
    assert generated.headers["x-request-id"]
    assert echoed.headers["x-request-id"] == "req-123"


# =============================================================================
# Logout
# =============================================================================

@pytest.mark.anyio
async def test_logout_invalidates_session(market_app, seeded_users):
    async with make_client(market_app) as client:
        await login(client, "buyer", "buyer@market.test", "buyer-pass")
        old_session = client.cookies.get("session_token")
        home = await client.get("/buyer/home")
        token = hidden_csrf(home.text)

        response = await client.post("/buyer/logout", data={"csrf_token": token})
        assert response.status_code == 303
        assert response.headers["location"] == "/buyer/login"
        assert "session_token" not in client.cookies

        replay = await client.get("/buyer/home", headers={"Cookie": f"session_token={old_session}"})
    assert replay.status_code == 401


@pytest.mark.anyio
async def test_logout_requires_csrf_token(market_app, seeded_users):
    async with make_client(market_app) as client:
        await login(client, "buyer", "buyer@market.test", "buyer-pass")
        response = await client.post("/buyer/logout", data={})
        still_in = await client.get("/buyer/home")
    assert response.status_code == 403
    assert still_in.status_code == 200


@pytest.mark.anyio
async def test_root_redirects_to_login(market_app):
    async with make_client(market_app) as client:
        response = await client.get("/")
    assert response.status_code == 303
    assert response.headers["location"] == "/buyer/login"
