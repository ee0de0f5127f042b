"""Canonical ordering and exclusive writing of the deployment descriptor.

Servers are sorted by (az, rack, type, uuid), each compared as plain text,
so the same inventory always renders to the same bytes. The output file is
created exclusively: an existing descriptor, possibly computed for another
region, is never overwritten.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from azinventory.errors import InventoryError, OutputExistsError
from azinventory.schemas.descriptor import Descriptor, Server

logger = logging.getLogger(__name__)


def _sort_key(server: Server) -> tuple[str, str, str, str]:
    return (server.az, server.rack, str(server.type), server.uuid)


def sort_servers(servers: Iterable[Server]) -> list[Server]:
    return sorted(servers, key=_sort_key)


def finalize(descriptor: Descriptor) -> Descriptor:
    return Descriptor(nshards=descriptor.nshards, servers=sort_servers(descriptor.servers))


def render_descriptor(descriptor: Descriptor) -> str:
    return finalize(descriptor).model_dump_json()


def write_descriptor(path: str | Path, descriptor: Descriptor) -> Path:
    path = Path(path)
    body = render_descriptor(descriptor)
    try:
        handle = path.open("x", encoding="utf-8")
    except FileExistsError as exc:
        raise OutputExistsError(f'write "{path}": file already exists') from exc
    except OSError as exc:
        raise InventoryError(f'write "{path}": {exc}') from exc

    try:
        with handle:
            handle.write(body)
    except OSError as exc:
        # This call created the file, so a partial descriptor is ours to remove
        path.unlink(missing_ok=True)
        raise InventoryError(f'write "{path}": {exc}') from exc

    logger.info("wrote %s", path)
    return path
