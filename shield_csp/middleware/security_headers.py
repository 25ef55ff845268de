"""Content-Security-Policy header injection middleware."""

from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from shield_csp.config.loader import get_settings
from shield_csp.config.presets import build_policy, get_preset_directives
from shield_csp.policy.digests import generate_nonce
from shield_csp.policy.errors import CspError
from shield_csp.policy.header import merge_csp, parse_csp

logger = structlog.get_logger()


class ContentSecurityPolicyMiddleware(BaseHTTPMiddleware):
    """Attach a freshly built policy to every response.

    - Generates a nonce per request, exposed to handlers as request.state.csp_nonce
    - Uses a preset profile (strict/balanced/permissive) from header_presets.yaml
    - Merges an optional header-string override on top of the preset
    - Sends Content-Security-Policy-Report-Only when reporting only
    - Leaves the response untouched if no policy can be built
    """

    def __init__(self, app: ASGIApp, preset: str | None = None, csp_override: str = "") -> None:
        super().__init__(app)
        self.preset = preset
        self.csp_override = csp_override

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        nonce = generate_nonce(get_settings().nonce_bytes)
        request.state.csp_nonce = nonce
        response = await call_next(request)
        try:
            return self._apply_header(response, nonce)
        except Exception as exc:
            logger.error("csp_header_error", error=str(exc), preset=self.preset)
            return response

    def _apply_header(self, response: Response, nonce: str) -> Response:
        settings = get_settings()
        preset = get_preset_directives(self.preset)
        directives = preset
        if self.csp_override:
            directives = merge_csp(preset, parse_csp(self.csp_override))

        try:
            policy = build_policy(
                directives,
                nonce=nonce,
                report_uri=settings.report_uri,
                report_only=settings.report_only,
            )
        except CspError as exc:
            # A bad override must not strip the header entirely
            logger.error("csp_override_rejected", error=str(exc), override=self.csp_override)
            policy = build_policy(
                preset,
                nonce=nonce,
                report_uri=settings.report_uri,
                report_only=settings.report_only,
            )

        response.headers[policy.header_name] = policy.build_header()
        return response
