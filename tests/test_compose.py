"""
Tests for the compose renderer — topology, API version, and write/undo.
"""

from pathlib import Path

import yaml

from sharespace_installer.core.services.compose import (
    APP_NETWORK,
    build_compose,
    detect_api_version,
    render_compose,
    render_step,
    write_compose,
)


class TestBuildCompose:
    def test_five_services_in_order(self, install_config):
        doc = build_compose(install_config, "1.41")
        assert list(doc["services"]) == ["signal-api", "sharespace-app", "watchtower", "mdns", "autoheal"]
        assert doc["networks"] == {APP_NETWORK: {"driver": "bridge"}}

    def test_restart_policy_everywhere(self, install_config):
        services = build_compose(install_config, "1.41")["services"]
        assert all(svc["restart"] == "unless-stopped" for svc in services.values())

    def test_app_service(self, install_config):
        app = build_compose(install_config, "1.41")["services"]["sharespace-app"]
        assert app["image"] == "yessir1232/sharespace:latest"
        assert app["container_name"] == "sharespace"
        assert app["depends_on"] == {"signal-api": {"condition": "service_healthy"}}
        assert app["ports"] == ["80:5000"]
        assert app["volumes"] == ["./data:/app/data"]
        assert "SIGNAL_API_BASE=http://signal-api:8080" in app["environment"]
        assert "EXTERNAL_PORT=80" in app["environment"]
        assert app["labels"] == ["com.centurylinklabs.watchtower.enable=true"]
        assert app["healthcheck"]["test"] == ["CMD", "curl", "-f", "http://localhost:5000/health"]
        assert app["healthcheck"]["start_period"] == "30s"

    def test_signal_api(self, install_config):
        signal = build_compose(install_config, "1.41")["services"]["signal-api"]
        assert signal["image"] == "bbernhard/signal-cli-rest-api:latest"
        assert signal["volumes"] == ["./data/signal-cli:/home/.local/share/signal-cli"]
        assert signal["environment"] == ["MODE=normal"]
        assert signal["networks"] == [APP_NETWORK]

    def test_watchtower_isolated_from_app_network(self, install_config):
        watchtower = build_compose(install_config, "1.41")["services"]["watchtower"]
        assert watchtower["network_mode"] == "none"
        assert "networks" not in watchtower
        assert watchtower["volumes"] == ["/var/run/docker.sock:/var/run/docker.sock"]
        assert "WATCHTOWER_POLL_INTERVAL=180" in watchtower["environment"]
        assert "WATCHTOWER_LABEL_ENABLE=true" in watchtower["environment"]

    def test_mdns_on_host_network(self, install_config):
        mdns = build_compose(install_config, "1.41")["services"]["mdns"]
        assert mdns["network_mode"] == "host"
        assert mdns["environment"] == ["SERVER_HOST_NAME=sharespace"]

    def test_autoheal(self, install_config):
        autoheal = build_compose(install_config, "1.41")["services"]["autoheal"]
        assert autoheal["environment"] == ["AUTOHEAL_CONTAINER_LABEL=all"]


class TestRenderCompose:
    def test_parses_back(self, install_config):
        text = render_compose(install_config, "1.43")
        assert text.startswith("# ShareSpace stack")
        assert yaml.safe_load(text) == build_compose(install_config, "1.43")

    def test_api_version_substituted_verbatim(self, install_config):
        for version in ("1.41", "1.45", "1.24"):
            text = render_compose(install_config, version)
            assert f"DOCKER_API_VERSION={version}" in text
            assert text.count(version) == 1

    def test_api_version_leaves_other_services_identical(self, install_config):
        a = yaml.safe_load(render_compose(install_config, "1.41"))
        b = yaml.safe_load(render_compose(install_config, "1.47"))
        for name in ("signal-api", "sharespace-app", "mdns", "autoheal"):
            assert yaml.safe_dump(a["services"][name]) == yaml.safe_dump(b["services"][name])
        assert a["networks"] == b["networks"]

        diff = [
            (x.strip(), y.strip()) for x, y in zip(
                render_compose(install_config, "1.41").splitlines(),
                render_compose(install_config, "1.47").splitlines(),
            ) if x != y
        ]
        assert diff == [("- DOCKER_API_VERSION=1.41", "- DOCKER_API_VERSION=1.47")]

    def test_insertion_order_kept(self, install_config):
        text = render_compose(install_config, "1.41")
        assert text.index("signal-api:") < text.index("sharespace-app:") < text.index("autoheal:")
        assert text.index("services:") < text.index("networks:\n  sharespace-network")


class TestDetectApiVersion:
    def test_detected(self, make_runner, mocks):
        mocks["docker"].set_output("api-version", "1.45")
        assert detect_api_version(make_runner("compose")) == "1.45"

    def test_failure_falls_back(self, make_runner, mocks):
        mocks["docker"].set_failure("api-version", "Cannot connect to the Docker daemon")
        assert detect_api_version(make_runner("compose")) == "1.41"

    def test_garbage_falls_back(self, make_runner, mocks):
        mocks["docker"].set_output("api-version", "")
        assert detect_api_version(make_runner("compose")) == "1.41"

    def test_non_version_output_falls_back(self, make_runner, mocks):
        for output in ("Error response from daemon: client version 1.52 is too new", "[mock] executed", "1.41-beta"):
            mocks["docker"].set_output("api-version", output)
            assert detect_api_version(make_runner("compose")) == "1.41"

    def test_surrounding_whitespace_stripped(self, make_runner, mocks):
        mocks["docker"].set_output("api-version", " 1.47\n")
        assert detect_api_version(make_runner("compose")) == "1.47"

    def test_probe_runs_in_dry_run(self, make_runner, mocks):
        mocks["docker"].set_output("api-version", "1.44")
        assert detect_api_version(make_runner("compose", dry_run=True)) == "1.44"


class TestWriteCompose:
    def test_new_file_registers_removal(self, make_runner, install_config):
        runner = make_runner("compose")
        path = write_compose(runner, "1.41")
        assert path == install_config.compose_file
        assert path.read_text() == render_compose(install_config, "1.41")

        runner.rollback()
        assert not path.exists()

    def test_overwrite_registers_restore(self, make_runner, install_config):
        path: Path = install_config.compose_file
        path.parent.mkdir(parents=True)
        path.write_text("services: {}\n")

        runner = make_runner("compose")
        write_compose(runner, "1.41")
        assert "watchtower" in path.read_text()

        runner.rollback()
        assert path.read_text() == "services: {}\n"

    def test_dry_run_writes_nothing(self, make_runner, install_config):
        write_compose(make_runner("compose", dry_run=True), "1.41")
        assert not install_config.compose_file.exists()

    def test_render_step_reports(self, make_runner, mocks, install_config):
        mocks["docker"].set_output("api-version", "1.46")
        data = render_step(make_runner("compose"))
        assert data == {"api_version": "1.46", "compose_file": str(install_config.compose_file)}
        assert "DOCKER_API_VERSION=1.46" in install_config.compose_file.read_text()
