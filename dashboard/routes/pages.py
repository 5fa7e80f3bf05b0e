from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.responses import Response

from ..security.access import LOGIN_PATH, Role, default_landing
from ..security.auth import get_session_context
from ..security.session import CookieCredentialStore, SessionContext

router = APIRouter(include_in_schema=False)

PAGE_SHELL_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{title} | Marketing Dashboard</title>
</head>
<body data-page="{page}" data-role="{role}">
  <div id="root"></div>
</body>
</html>
"""

def _finish(context: SessionContext, response: Response) -> Response:
    # push cookie changes made while loading (e.g. a rejected token) to the client
    store = context.store
    if isinstance(store, CookieCredentialStore):
        store.apply(response)
    return response

def _render(context: SessionContext, page: str, title: str, required: Role | None = None, auth_route: bool = False) -> Response:
    decision = context.decide(required, auth_route)
    if not decision.allowed:
        return _finish(context, RedirectResponse(decision.location, status_code=303))
    role = context.role.value if context.role else ""
    html = PAGE_SHELL_HTML.format(title=escape(title), page=escape(page), role=escape(role))
    return _finish(context, HTMLResponse(html))

@router.get("/")
def root(context: SessionContext = Depends(get_session_context)):
    location = default_landing(context.role) if context.is_authenticated else LOGIN_PATH
    return _finish(context, RedirectResponse(location, status_code=303))

@router.get("/auth/login")
def login_page(context: SessionContext = Depends(get_session_context)):
    return _render(context, "login", "Sign in", auth_route=True)

@router.get("/admin")
def admin_page(context: SessionContext = Depends(get_session_context)):
    return _render(context, "admin", "Admin", required=Role.ADMIN)

@router.get("/dashboard/feed")
def feed_page(context: SessionContext = Depends(get_session_context)):
    return _render(context, "feed", "Feed", required=Role.VIEWER)

@router.get("/dashboard/insights")
def insights_page(context: SessionContext = Depends(get_session_context)):
    return _render(context, "insights", "Insights", required=Role.VIEWER)
