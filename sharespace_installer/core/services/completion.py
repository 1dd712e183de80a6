"""
Completion reporter — where to reach the app and how to operate it.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Any

from sharespace_installer.core.engine.executor import StepRunner
from sharespace_installer.core.models.install import InstallConfig

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


def first_address(hostname_output: str) -> str | None:
    """First valid address in ``hostname -I`` output."""
    for token in hostname_output.split():
        try:
            ipaddress.ip_address(token)
        except ValueError:
            continue
        return token
    return None


def route_ip() -> str:
    """Address of the interface holding the default route.

    Connecting a UDP socket sends nothing; it only selects a route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        return UNKNOWN_IP


def primary_ip(runner: StepRunner) -> str:
    receipt = runner.probe("shell", "hostname-ip", name="hostname -I", argv=["hostname", "-I"])
    if receipt.ok:
        address = first_address(receipt.output)
        if address:
            return address
    return route_ip()


def build_completion_message(config: InstallConfig, ip: str) -> str:
    """The post-install summary shown to the operator."""
    compose = f"docker compose -f {config.compose_file}"
    minutes, seconds = divmod(config.watchtower_poll_interval, 60)
    interval = f"{minutes} minutes" if minutes and not seconds else f"{config.watchtower_poll_interval} seconds"

    return "\n".join([
        "Access the application at:",
        f"  http://{ip}",
        f"  http://{config.mdns_hostname}.local",
        "",
        "Useful commands:",
        f"  View logs:        docker logs -f {config.app_container}",
        f"  View all logs:    {compose} logs -f",
        f"  Restart:          {compose} restart",
        f"  Stop:             {compose} down",
        f"  Start:            {compose} up -d",
        "",
        f"Data directory: {config.data_dir}",
        "",
        "NEXT STEPS:",
        "  1. Open the web interface at one of the URLs above",
        "  2. Enter your license key",
        "  3. Complete the initial setup wizard",
        "  4. Link your Signal group for automated messaging",
        "",
        f"Updates are automatic via Watchtower (checks every {interval})",
    ])


def report_completion(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: work out the host address and build the summary."""
    ip = primary_ip(runner)
    logger.debug("Primary address: %s", ip)
    return {"ip": ip, "message": build_completion_message(runner.config, ip)}
