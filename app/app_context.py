from pathlib import Path

from fastapi.templating import Jinja2Templates
from starlette.requests import Request

from Security.csrf_protection import issue_csrf_token
from Security.token_generator import generate_token

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

LANDING_PAGES = {
    "admin": "/admin/dashboard",
    "farmer": "/farmer/dashboard",
    "buyer": "/buyer/home",
}


def landing_page_for(role: str) -> str:
    return LANDING_PAGES.get(role, "/")


def render_form(request: Request, name: str, context: dict | None = None, status_code: int = 200):
    """Render a page holding a state-changing form, with a fresh CSRF token."""
    token = generate_token()
    context = dict(context or {})
    context["csrf_token"] = token
    response = templates.TemplateResponse(request, name, context, status_code=status_code)
    issue_csrf_token(response, token)
    return response
