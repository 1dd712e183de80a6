"""
Stack launcher — pull images, bring the stack up, confirm readiness.

Readiness is read from ``docker compose ps --all --format json`` and
polled a bounded number of times. An application container that is
not confirmed running at the end is a warning, not a failure: images
may still be starting on a slow host.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sharespace_installer.core.engine.executor import StepRunner
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.models.readiness import ReadinessState, ServiceStatus

logger = logging.getLogger(__name__)


def parse_compose_ps(output: str) -> list[ServiceStatus]:
    """Parse ``docker compose ps --format json`` output.

    Compose v2 prints either a JSON array or one JSON object per line,
    depending on its version. Unparseable lines are skipped.
    """
    output = output.strip()
    if not output:
        return []

    try:
        parsed = json.loads(output)
        raw_list = parsed if isinstance(parsed, list) else [parsed]
    except json.JSONDecodeError:
        raw_list = []
        for line in output.splitlines():
            try:
                raw_list.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    statuses: list[ServiceStatus] = []
    for raw in raw_list:
        if not isinstance(raw, dict):
            continue
        statuses.append(
            ServiceStatus(
                service=raw.get("Service", ""),
                name=raw.get("Name", ""),
                state=raw.get("State", ""),
                health=raw.get("Health", ""),
                status=raw.get("Status", ""),
            )
        )
    return statuses


def service_readiness(statuses: list[ServiceStatus], config: InstallConfig) -> ReadinessState:
    """Readiness of the application service among *statuses*."""
    for status in statuses:
        if status.service == config.app_service or status.name == config.app_container:
            return status.readiness
    return ReadinessState.MISSING


def diagnostic_commands(config: InstallConfig) -> list[str]:
    return [
        f"docker compose -f {config.compose_file} ps",
        f"docker logs {config.app_container}",
    ]


def wait_for_app(runner: StepRunner) -> ReadinessState:
    """Poll the application container until running or attempts run out."""
    config = runner.config
    runner.sleep(config.readiness_delay)

    state = ReadinessState.MISSING
    for attempt in range(1, config.readiness_attempts + 1):
        receipt = runner.run(
            "docker",
            f"ps-{attempt}",
            name="docker compose ps",
            operation="ps",
            compose_file=str(config.compose_file),
        )
        if receipt.ok:
            state = service_readiness(parse_compose_ps(receipt.output), config)
        logger.debug("Readiness attempt %d/%d: %s", attempt, config.readiness_attempts, state.value)
        if state == ReadinessState.RUNNING:
            break
        if attempt < config.readiness_attempts:
            runner.sleep(config.readiness_interval)
    return state


def launch_stack(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: pull, start, and check the application."""
    config = runner.config
    compose_file = str(config.compose_file)

    logger.info("Pulling Docker images...")
    runner.require("docker", "pull", name="docker compose pull",
                   operation="pull", compose_file=compose_file)

    logger.info("Starting application...")
    runner.require("docker", "up", name="docker compose up -d",
                   operation="up", compose_file=compose_file)
    runner.compensate("docker", "up", name="docker compose down",
                      operation="down", compose_file=compose_file)

    if runner.dry_run:
        return {"readiness": "skipped"}

    logger.info("Waiting for services to start...")
    state = wait_for_app(runner)
    if state == ReadinessState.RUNNING:
        logger.info("Application started successfully!")
    else:
        runner.warn(
            f"Application not confirmed running ({state.value}). Check status with: "
            + "; ".join(diagnostic_commands(config))
        )
    return {"readiness": state.value}
