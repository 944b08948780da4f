#!/usr/bin/env python
"""Create (or destroy) the root provider.

The root provider holds ``manage_providers`` and is the only way to create
further providers over the API. This script also creates any missing tables
in both stores.

The signing secret is printed once; store it with the client that will
manage providers.

Usage:
    DATABASE_URL=... SECRETS_DATABASE_URL=... python scripts/create_root_provider.py
    DATABASE_URL=... SECRETS_DATABASE_URL=... python scripts/create_root_provider.py --destroy
"""

import argparse
import json
import sys

DEFAULT_ROOT_NAME = "root_provider"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--name", default=DEFAULT_ROOT_NAME, help="root provider name")
    parser.add_argument("--destroy", action="store_true", help="remove the root provider")
    args = parser.parse_args(argv)

    from licensor.config import get_settings
    from licensor.context import LicenseServer, build_context
    from licensor.db.schema import create_all
    from licensor.errors import ApiError
    from licensor.logging import configure_logging

    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)

    context = build_context(settings)
    create_all(
        context.registry_sessions.kw["bind"],
        context.secret_sessions.kw["bind"],
    )
    server = LicenseServer(context)

    try:
        if args.destroy:
            provider = server.providers.destroy(args.name)
            print("Root provider destroyed")
        else:
            provider = server.providers.create(args.name, {"manage_providers": True})
            print("Root provider created")
    except ApiError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(provider.model_dump(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
