#!/usr/bin/env python3
"""
Inspect or purge the content gateway cache through its admin endpoint.

Without ``--entity-type`` the script prints cache statistics; with it, the
cache of that entity type is invalidated. Useful after bulk CMS imports that
bypass webhooks.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import httpx


async def revalidate(
    *,
    gateway_url: str,
    token: str,
    entity_type: Optional[str],
    entity_id: Optional[str],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Call the admin endpoint and return its JSON body."""
    url = f"{gateway_url.rstrip('/')}/api/revalidate"
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        if entity_type:
            body: Dict[str, Any] = {"entityType": entity_type}
            if entity_id:
                body["entityId"] = entity_id
            response = await client.post(url, params={"token": token}, json=body)
        else:
            response = await client.get(url, params={"token": token})

    response.raise_for_status()
    return response.json()


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect or purge the content gateway cache.")
    parser.add_argument("--gateway-url", default=os.getenv("CONTENT_GATEWAY_URL", "http://localhost:8000"), help="Content gateway base URL")
    parser.add_argument("--token", default=os.getenv("REVALIDATE_SECRET"), help="Admin token (defaults to REVALIDATE_SECRET)")
    parser.add_argument("--entity-type", default=None, help="Entity type to purge, e.g. hotels or hotel")
    parser.add_argument("--entity-id", default=None, help="Identifier of the changed item (logged only)")
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write the JSON response")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    if not args.token:
        print("[revalidate] missing --token or REVALIDATE_SECRET", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(
            revalidate(
                gateway_url=args.gateway_url,
                token=args.token,
                entity_type=args.entity_type,
                entity_id=args.entity_id,
                timeout=args.timeout,
            )
        )
    except KeyboardInterrupt:
        return 130
    except httpx.HTTPStatusError as exc:
        print(f"[revalidate] gateway returned {exc.response.status_code}: {exc.response.text}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:  # pragma: no cover - CLI surface
        print(f"[revalidate] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))

    if args.output:
        args.output.write_text(json.dumps(result, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
