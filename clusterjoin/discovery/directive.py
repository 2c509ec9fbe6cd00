"""Parsing of discovery directives.

A directive is a whitespace separated list of ``key=value`` pairs, for example
``provider=file path="/etc/cluster peers.json"``. Values may be double quoted;
inside quotes ``\\"`` and ``\\\\`` are unescaped. The ``provider`` key selects
the backend, every other key is handed to it as an argument.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from clusterjoin.core.errors import DiscoveryError
from clusterjoin.datastructures.type_aliases import (
    DiscoveryDirectiveString,
    ProviderName,
)


@dataclass(frozen=True, slots=True)
class DiscoveryDirective:
    provider: ProviderName
    arguments: dict[str, str] = field(default_factory=dict)

    def render(self) -> DiscoveryDirectiveString:
        """Render back to directive form with ``provider`` first."""
        parts = [f"provider={_quote(self.provider)}"]
        parts.extend(
            f"{key}={_quote(value)}" for key, value in sorted(self.arguments.items())
        )
        return " ".join(parts)


def _quote(value: str) -> str:
    if value and not any(ch.isspace() or ch in '"\\' for ch in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _tokenize(text: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    i = 0
    n = len(text)
    while i < n:
        if text[i].isspace():
            i += 1
            continue

        start = i
        while i < n and text[i] != "=" and not text[i].isspace():
            i += 1
        key = text[start:i]
        if i >= n or text[i] != "=":
            raise DiscoveryError(f"Invalid discovery directive: missing '=' after {key!r}")
        if not key:
            raise DiscoveryError("Invalid discovery directive: empty key")
        i += 1

        if i < n and text[i] == '"':
            i += 1
            chars: list[str] = []
            while True:
                if i >= n:
                    raise DiscoveryError(
                        f"Invalid discovery directive: unterminated quote for {key!r}"
                    )
                ch = text[i]
                if ch == "\\" and i + 1 < n:
                    chars.append(text[i + 1])
                    i += 2
                    continue
                if ch == '"':
                    i += 1
                    break
                chars.append(ch)
                i += 1
            value = "".join(chars)
            if i < n and not text[i].isspace():
                raise DiscoveryError(
                    f"Invalid discovery directive: unexpected text after {key!r}"
                )
        else:
            start = i
            while i < n and not text[i].isspace():
                i += 1
            value = text[start:i]

        pairs.append((key, value))
    return pairs


def parse_directive(directive: DiscoveryDirectiveString) -> DiscoveryDirective:
    """Parse ``directive`` into a provider name and its arguments."""
    arguments: dict[str, str] = {}
    for key, value in _tokenize(directive):
        if key in arguments:
            raise DiscoveryError(f"Invalid discovery directive: duplicate key {key!r}")
        arguments[key] = value

    provider = arguments.pop("provider", "")
    if not provider:
        raise DiscoveryError(f"Discovery directive has no provider: {directive!r}")
    return DiscoveryDirective(provider=provider, arguments=arguments)
