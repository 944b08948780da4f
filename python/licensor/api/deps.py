"""FastAPI dependencies for route handlers.

Parameter parsing and provider authentication shared by every route.
"""

import json
from typing import Any

from fastapi import Depends, Request

from licensor.context import LicenseServer
from licensor.errors import ApiErrorCode, AuthFailedError, ForbiddenError, InvalidArgumentError
from licensor.logging import set_provider
from licensor.services import signature
from licensor.services.flags import Flag, has_flag
from licensor.services.providers import ProviderRecord

__all__ = [
    "get_params",
    "get_server",
    "require_manage_providers",
    "require_signature",
    "resolve_provider",
]


def get_server(request: Request) -> LicenseServer:
    """Get this worker's LicenseServer from app state."""
    return request.app.state.license_server


async def get_params(request: Request) -> dict[str, Any]:
    """Flat request parameters: query string for GET, JSON body otherwise.

    Raises:
        InvalidArgumentError: If a body is present but is not a JSON object.
    """
    if request.method == "GET":
        return dict(request.query_params)

    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidArgumentError(message="Malformed JSON body") from exc
    if not isinstance(data, dict):
        raise InvalidArgumentError(message="Malformed JSON body")
    return data


def resolve_provider(
    request: Request,
    params: dict[str, Any] = Depends(get_params),
    server: LicenseServer = Depends(get_server),
) -> ProviderRecord:
    """Resolve the calling provider named by the ``provider`` parameter.

    Raises:
        InvalidArgumentError: ``provider`` missing.
        NotFoundError: No such provider.
    """
    name = params.get("provider")
    if not name:
        raise InvalidArgumentError(ApiErrorCode.E_PROVIDER_MISSING, "Provider missing")
    provider = server.providers.get_raw(name)
    request.state.provider = provider.name
    set_provider(provider.name)
    return provider


def require_signature(params: dict[str, Any], provider: ProviderRecord) -> None:
    """Raise AuthFailedError unless ``params`` carries a valid signature."""
    if not signature.verify(params, provider.sign_iv, provider.sign_key):
        raise AuthFailedError(ApiErrorCode.E_SIGNATURE_INVALID, "Missing or invalid signature")


def require_manage_providers(provider: ProviderRecord) -> None:
    """Raise ForbiddenError unless the provider may manage other providers."""
    if not has_flag(provider.flags, Flag.MANAGE_PROVIDERS):
        raise ForbiddenError()
