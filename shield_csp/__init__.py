"""
Shield CSP - Content-Security-Policy header builder

Call setup_logging() once at startup to route the builder's structlog
advisories through stdlib logging (CSP_LOG_LEVEL / CSP_LOG_JSON).
"""

__version__ = "0.1.0"
__author__ = "Shield AI Team"

from shield_csp.logging_config import setup_logging
from shield_csp.policy import ContentSecurityPolicy, CspError, generate_nonce

__all__ = ['ContentSecurityPolicy', 'CspError', 'generate_nonce', 'setup_logging']
