"""SHIMS server entry point — ``python -m shims.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from shims.core.config.settings import get_settings
from shims.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the SHIMS MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.shims_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.shims_allow_insecure_bind and not _is_loopback_host(settings.shims_host):
        raise RuntimeError(
            "Refusing to bind SHIMS server to a non-loopback host without an auth layer. "
            "Set SHIMS_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting SHIMS Daily Monitoring server on %s:%d",
        settings.shims_host,
        settings.shims_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.shims_host,
        port=settings.shims_port,
    )


if __name__ == "__main__":
    run()
