"""Provider management routes.

Both routes require a valid signature from a provider holding the
``manage_providers`` flag.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from licensor.api.deps import (
    get_params,
    get_server,
    require_manage_providers,
    require_signature,
    resolve_provider,
)
from licensor.context import LicenseServer
from licensor.errors import ApiErrorCode, InvalidArgumentError
from licensor.responses import render
from licensor.schemas.providers import FlagsIn
from licensor.services.providers import ProviderRecord

router = APIRouter()


def parse_flags_param(value: Any) -> dict[str, bool]:
    """Validate requested flags against the closed capability set.

    Raises:
        InvalidArgumentError: Unknown flag name or non-boolean value.
    """
    if value is None:
        return {}
    try:
        return FlagsIn.model_validate(value).model_dump()
    except ValidationError as exc:
        raise InvalidArgumentError(ApiErrorCode.E_FLAGS_INVALID, "Invalid flags") from exc


@router.post("/providers.json")
@router.post("/providers")
def create_provider(
    request: Request,
    params: dict[str, Any] = Depends(get_params),
    provider: ProviderRecord = Depends(resolve_provider),
    server: LicenseServer = Depends(get_server),
) -> Response:
    """Create a provider. The response carries its hex signing secret."""
    require_signature(params, provider)
    require_manage_providers(provider)
    flags = parse_flags_param(params.get("flags"))
    return render(request, server.providers.create(params.get("name"), flags))


@router.delete("/providers/{name}")
@router.delete("/providers/{name}.json")
def destroy_provider(
    name: str,
    request: Request,
    params: dict[str, Any] = Depends(get_params),
    provider: ProviderRecord = Depends(resolve_provider),
    server: LicenseServer = Depends(get_server),
) -> Response:
    """Delete a provider and its secrets; returns the pre-delete view."""
    params["name"] = name
    require_signature(params, provider)
    require_manage_providers(provider)
    return render(request, server.providers.destroy(name))
