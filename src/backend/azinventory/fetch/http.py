"""Response handling shared by both upstream sources."""

from typing import Any

import httpx

from azinventory.errors import FetchError


def read_json(response: httpx.Response) -> Any:
    """Return the decoded body of a successful response.

    Redirects are not followed, so any non-2xx status is an error.
    """
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(f'unexpected response code "{response.status_code}"') from exc
    try:
        return response.json()
    except ValueError as exc:
        raise FetchError(f"failed to parse response from {response.url}: {exc}") from exc
