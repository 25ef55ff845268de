"""Validation errors raised by the policy builder.

Every error is a caller-input failure raised before any policy state changes.
"""

from __future__ import annotations


class CspError(ValueError):
    """Base class for all policy validation failures."""

    message = "Invalid Content-Security-Policy input: '{value}'."

    def __init__(self, value: str = "") -> None:
        self.value = value
        super().__init__(self.message.format(value=value))


class InvalidDirective(CspError):
    message = (
        "The specified directive '{value}' either is not a valid CSP directive "
        "or can not be set with this function."
    )


class InvalidFetchDirective(InvalidDirective):
    message = "The directive '{value}' is not a fetch directive that accepts this policy."


class InvalidDocumentDirective(InvalidDirective):
    message = "The directive '{value}' is not a document directive."


class InvalidDefaultSrc(InvalidDirective):
    message = "default-src can only be set when the policy is created, not via '{value}'."


class InvalidChildSrc(InvalidDirective):
    message = "child-src is derived from frame-src and worker-src and can not be set directly."


class InvalidHostSource(CspError):
    message = "The host source '{value}' may not carry userinfo, a path, a query or a fragment."


class InvalidHostName(InvalidHostSource):
    message = "The host source '{value}' does not contain a valid hostname."


class InvalidHostScheme(InvalidHostSource):
    message = "The host source '{value}' must use the http or https scheme."


class InvalidFetchScheme(CspError):
    message = "The scheme source '{value}' is not an allowed scheme."


class InvalidSandboxPolicy(CspError):
    message = "The specified policy '{value}' is not a valid sandbox directive policy."


class BadSandboxValue(InvalidSandboxPolicy):
    message = "The sandbox value '{value}' must be a single unquoted token."


class BadMime(CspError):
    message = "The plugin type '{value}' must be a MIME type of the form type/subtype."


class BadAlgo(CspError):
    message = "The hash algorithm must be sha256, sha384, or sha512. You supplied '{value}'."


class BadHash(CspError):
    message = "The hash must be a valid hex or base64 encoded hash. You supplied '{value}'."


class BadNonce(CspError):
    message = (
        "The nonce must be a 128-bit or larger nonce encoded as a base64 string. "
        "You supplied '{value}'."
    )


class InvalidReportUri(CspError):
    message = "The report URI '{value}' must be an absolute http(s) URL or an absolute path."
