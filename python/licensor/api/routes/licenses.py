"""License routes.

- POST /licenses[.json]: issue a license (signature always required)
- GET /licenses/{content_id}[.json]: fetch a license; authentication
  depends on the provider's flags:
    check_token: a valid one-time ``token`` is required, no signature
    check_sign: a valid signature is required
    neither: no authentication
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from licensor.api.deps import get_params, get_server, require_signature, resolve_provider
from licensor.context import LicenseServer
from licensor.errors import ApiErrorCode, AuthFailedError
from licensor.responses import render
from licensor.services.flags import Flag, has_flag
from licensor.services.providers import ProviderRecord

router = APIRouter()


@router.post("/licenses.json")
@router.post("/licenses")
def create_license(
    request: Request,
    params: dict[str, Any] = Depends(get_params),
    provider: ProviderRecord = Depends(resolve_provider),
    server: LicenseServer = Depends(get_server),
) -> Response:
    """Issue a license for (provider, content_id, sequence_id)."""
    require_signature(params, provider)
    license_out = server.licenses.create(
        provider.name, params.get("content_id"), params.get("sequence_id")
    )
    return render(request, license_out)


# The .json variant is registered first so ``5.json`` is never taken as a content_id.
@router.get("/licenses/{content_id}")
@router.get("/licenses/{content_id}.json")
def get_license(
    content_id: str,
    request: Request,
    params: dict[str, Any] = Depends(get_params),
    provider: ProviderRecord = Depends(resolve_provider),
    server: LicenseServer = Depends(get_server),
) -> Response:
    """Return the plaintext license as 16 hex chars."""
    params["content_id"] = content_id

    if has_flag(provider.flags, Flag.CHECK_TOKEN):
        if not server.tokens.verify(params.get("token"), provider.sign_iv, provider.sign_key):
            raise AuthFailedError(ApiErrorCode.E_TOKEN_INVALID, "Missing or invalid token")
    elif has_flag(provider.flags, Flag.CHECK_SIGN):
        require_signature(params, provider)

    license_hex = server.licenses.get(provider.name, content_id, params.get("sequence_id"))
    return render(request, license_hex)
