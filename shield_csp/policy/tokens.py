"""Typed policy tokens.

A directive's value is an ordered list of these. The classifier produces them
once from caller input; everything downstream matches on the token class
instead of re-inspecting strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Token:
    """Base class for one classified source expression."""

    kind: ClassVar[str] = "token"

    def render(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Keyword(Token):
    """'self' or 'none'."""

    name: str
    kind: ClassVar[str] = "keyword"

    def render(self) -> str:
        return f"'{self.name}'"


@dataclass(frozen=True)
class Scheme(Token):
    """Scheme source such as ``https:`` or ``data:``."""

    scheme: str
    kind: ClassVar[str] = "scheme"

    def render(self) -> str:
        return self.scheme


@dataclass(frozen=True)
class Host(Token):
    """Canonical host source: ``[scheme://]host[:port]`` or ``*``."""

    source: str
    kind: ClassVar[str] = "host"

    def render(self) -> str:
        return self.source


@dataclass(frozen=True)
class Hash(Token):
    algorithm: str
    digest: str
    kind: ClassVar[str] = "hash"

    def render(self) -> str:
        return f"'{self.algorithm}-{self.digest}'"


@dataclass(frozen=True)
class Nonce(Token):
    value: str
    kind: ClassVar[str] = "nonce"

    def render(self) -> str:
        return f"'nonce-{self.value}'"


@dataclass(frozen=True)
class Unsafe(Token):
    """'unsafe-inline' or 'unsafe-eval'."""

    name: str
    kind: ClassVar[str] = "unsafe"

    def render(self) -> str:
        return f"'{self.name}'"


@dataclass(frozen=True)
class StrictDynamic(Token):
    kind: ClassVar[str] = "strict-dynamic"

    def render(self) -> str:
        return "'strict-dynamic'"


@dataclass(frozen=True)
class ReportSample(Token):
    kind: ClassVar[str] = "report-sample"

    def render(self) -> str:
        return "'report-sample'"


SELF = Keyword("self")
NONE = Keyword("none")
UNSAFE_INLINE = Unsafe("unsafe-inline")
UNSAFE_EVAL = Unsafe("unsafe-eval")
STRICT_DYNAMIC = StrictDynamic()
REPORT_SAMPLE = ReportSample()
WILDCARD = Host("*")
