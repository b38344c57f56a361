"""Page routes that are answered by the proxy itself."""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from fonts_proxy.config import ProxySettings, get_settings
from fonts_proxy.routing import ALL_METHODS

router = APIRouter()


@router.api_route("/", methods=ALL_METHODS)
async def index(settings: ProxySettings = Depends(get_settings)) -> RedirectResponse:
    """Redirect to the project information page."""
    return RedirectResponse(settings.info_url, status_code=302)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
