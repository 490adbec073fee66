import html
import os

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse

from ..config import settings
from ..services.plans import PLANS


router = APIRouter(tags=["pages"])

# Paths the single-page client routes itself
CLIENT_ROUTES = {
    "/", "/home", "/about", "/contact", "/pricing", "/jobs",
    "/auth", "/company", "/employees", "/branches", "/dashboard",
}
NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def _index_path() -> str:
    return os.path.join(settings.frontend_dist, "index.html")


def render_shell():
    """The built client if present, else a minimal shell that loads nothing but still routes."""
    index_path = _index_path()
    if os.path.exists(index_path):
        return FileResponse(index_path, headers=NO_CACHE)
    shell = f"""
<!doctype html>
<meta charset='utf-8'>
<title>{settings.app_name}</title>
<div id="root"></div>
<script>
const token = localStorage.getItem('user_token');
if (!token && ['/dashboard','/company','/employees','/branches'].includes(location.pathname)) {{ location.replace('/auth'); }}
</script>
"""
    return HTMLResponse(content=shell, headers=NO_CACHE)


def not_found_page(path: str) -> HTMLResponse:
    body = f"""
<!doctype html>
<meta charset='utf-8'>
<title>404</title>
<h1>404</h1>
<p>Oops! Page not found: <code>{html.escape(path)}</code></p>
<a href="/">Return to Home</a>
"""
    return HTMLResponse(content=body, status_code=404)


async def spa_html_middleware(request: Request, call_next):
    # Browser navigations to client routes get the shell even where an API path shares the name
    if request.method == "GET" and "text/html" in request.headers.get("accept", ""):
        if request.url.path in CLIENT_ROUTES:
            return render_shell()
    return await call_next(request)


@router.get("/pricing/plans")
def pricing_plans():
    return {"plans": PLANS}


for _path in ("/", "/home", "/about", "/contact", "/pricing", "/jobs", "/auth", "/company"):
    router.add_api_route(_path, render_shell, methods=["GET"], include_in_schema=False)


# Registered last, after every API router
fallback_router = APIRouter(tags=["pages"])


@fallback_router.get("/{full_path:path}", include_in_schema=False)
def spa_fallback(full_path: str):
    root = os.path.realpath(settings.frontend_dist)
    asset_path = os.path.realpath(os.path.join(root, full_path))
    if full_path and asset_path.startswith(root + os.sep) and os.path.isfile(asset_path):
        return FileResponse(asset_path, headers={"Cache-Control": "public, max-age=3600"})
    return not_found_page("/" + full_path)
