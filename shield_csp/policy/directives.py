"""Directive vocabularies and the per-directive token set."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from shield_csp.policy.tokens import NONE, Hash, Nonce, Token

DEFAULT_SRC = "default-src"
CHILD_SRC = "child-src"
BASE_URI = "base-uri"
PLUGIN_TYPES = "plugin-types"
SANDBOX = "sandbox"
FORM_ACTION = "form-action"
FRAME_ANCESTORS = "frame-ancestors"
REPORT_URI = "report-uri"

# Render order of the fetch directives that inherit from default-src
FETCH_DIRECTIVES: tuple[str, ...] = (
    "connect-src",
    "font-src",
    "frame-src",
    "img-src",
    "manifest-src",
    "media-src",
    "object-src",
    "script-src",
    "style-src",
    "worker-src",
)

DOCUMENT_DIRECTIVES: tuple[str, ...] = (BASE_URI, PLUGIN_TYPES, SANDBOX)
NAVIGATION_DIRECTIVES: tuple[str, ...] = (FORM_ACTION, FRAME_ANCESTORS)

# Recognised only so they can be rejected as unsupported
EXPERIMENTAL_DIRECTIVES = frozenset({
    "disown-opener",
    "navigate-to",
    "navigation-to",
    "report-to",
})

KNOWN_DIRECTIVES = frozenset({
    DEFAULT_SRC,
    CHILD_SRC,
    *FETCH_DIRECTIVES,
    *DOCUMENT_DIRECTIVES,
    *NAVIGATION_DIRECTIVES,
    REPORT_URI,
})

# Directives holding a plain source list (keywords, schemes, hosts)
SOURCE_LIST_DIRECTIVES: tuple[str, ...] = (*FETCH_DIRECTIVES, BASE_URI, *NAVIGATION_DIRECTIVES)

INHERITANCE_EXEMPT = frozenset({
    BASE_URI,
    PLUGIN_TYPES,
    SANDBOX,
    FORM_ACTION,
    FRAME_ANCESTORS,
    REPORT_URI,
})

ALLOWED_SCHEMES = frozenset({
    "https:",
    "data:",
    "blob:",
    "mediastream:",
    "filesystem:",
})

SANDBOX_VALUES = frozenset({
    "allow-downloads",
    "allow-forms",
    "allow-modals",
    "allow-orientation-lock",
    "allow-pointer-lock",
    "allow-popups",
    "allow-popups-to-escape-sandbox",
    "allow-presentation",
    "allow-same-origin",
    "allow-scripts",
    "allow-top-navigation",
    "allow-top-navigation-by-user-activation",
})

DEFAULT_PLUGIN_TYPES: tuple[str, ...] = ("image/svg+xml", "application/pdf")

# Directives where nonces and hashes are meaningful
INLINE_DIRECTIVES = frozenset({"script-src", "style-src"})
STRICT_DYNAMIC_DIRECTIVES = frozenset({DEFAULT_SRC, "script-src"})
UNSAFE_DIRECTIVES = {
    "unsafe-inline": frozenset({DEFAULT_SRC, "script-src", "style-src"}),
    "unsafe-eval": frozenset({DEFAULT_SRC, "script-src"}),
}


def normalize_directive(name: str) -> str:
    return name.strip().lower()


class DirectiveSet:
    """Ordered, duplicate-free tokens of a single directive.

    'none' never shares the set with another token: adding 'none' wipes the
    set, and adding anything to a set holding only 'none' replaces it.
    """

    def __init__(self, name: str, tokens: Iterable[Token] = ()) -> None:
        self.name = name
        self._tokens: list[Token] = []
        for token in tokens:
            self.add(token)

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __repr__(self) -> str:
        return f"DirectiveSet({self.name!r}, {self.values()!r})"

    @property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(self._tokens)

    def is_none(self) -> bool:
        return self._tokens == [NONE]

    def set_keyword(self, keyword: Token) -> None:
        """Exclusive assignment: the keyword becomes the only token."""
        self._tokens = [keyword]

    def add(self, token: Token) -> bool:
        """Append a token if absent. Returns False when it was already present."""
        if token == NONE:
            self._tokens = [NONE]
            return True
        if token in self._tokens:
            return False
        if self.is_none():
            self._tokens = [token]
            return True
        self._tokens.append(token)
        return True

    def index_of(self, token: Token) -> int | None:
        try:
            return self._tokens.index(token)
        except ValueError:
            return None

    def replace_at(self, index: int, token: Token) -> None:
        """Swap the token at ``index`` keeping its position."""
        if token in self._tokens:
            del self._tokens[index]
        else:
            self._tokens[index] = token

    def has_nonce_or_hash(self) -> bool:
        return any(isinstance(token, (Nonce, Hash)) for token in self._tokens)

    def copy_from(self, other: DirectiveSet) -> None:
        self._tokens = list(other._tokens)

    def clear(self) -> None:
        self._tokens = []

    def values(self) -> tuple[str, ...]:
        return tuple(token.render() for token in self._tokens)
