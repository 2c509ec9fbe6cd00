"""File based discovery: ``provider=file path=/etc/clusterjoin/peers.json``.

The file may hold a JSON list of addresses, a JSON object with an
``addresses`` list, or plain text with one address per line (``#`` starts a
comment). The file is re-read on every resolve so edits are picked up between
retries.
"""

from __future__ import annotations

import json
from pathlib import Path

import aiofiles

from clusterjoin.core.errors import DiscoveryError
from clusterjoin.datastructures.type_aliases import AddressString, DiscoveryArguments

from .registry import DiscoveryBackend


class FileDiscoveryBackend(DiscoveryBackend):
    name = "file"

    async def discover(self, arguments: DiscoveryArguments) -> list[AddressString]:
        path_arg = arguments.get("path", "")
        if not path_arg:
            raise DiscoveryError("file discovery requires a path argument")

        path = Path(path_arg)
        try:
            async with aiofiles.open(path) as f:
                content = await f.read()
        except FileNotFoundError as e:
            raise DiscoveryError(f"Discovery file not found: {path}") from e

        stripped = content.lstrip()
        if stripped.startswith(("[", "{")):
            return _addresses_from_json(path, stripped)
        return _addresses_from_lines(content)

    def help(self) -> str:
        return "file: path=<file with a JSON address list or one address per line>"


def _addresses_from_json(path: Path, content: str) -> list[AddressString]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise DiscoveryError(f"Invalid JSON in discovery file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("addresses", [])
    if not isinstance(data, list) or not all(isinstance(a, str) for a in data):
        raise DiscoveryError(f"Discovery file {path} must list address strings")
    return [address.strip() for address in data if address.strip()]


def _addresses_from_lines(content: str) -> list[AddressString]:
    addresses = []
    for line in content.splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            addresses.append(line)
    return addresses
