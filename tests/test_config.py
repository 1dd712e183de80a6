"""
Tests for configuration resolution — real user, paths, and overrides.
"""

import os
import pwd
from pathlib import Path

import pytest

from sharespace_installer.core.config.loader import ConfigError, load_overrides, resolve_config
from sharespace_installer.core.models.install import InstallConfig


class TestResolveConfig:
    def test_plain_user(self, tmp_path: Path):
        config = resolve_config(environ={"USER": "tester", "HOME": str(tmp_path)}, euid=1000)
        assert config.real_user == "tester"
        assert config.real_home == tmp_path
        assert config.install_root == tmp_path / "share-space"
        assert not config.delegated
        assert not config.elevated

    def test_sudo_user_from_passwd(self, tmp_path: Path):
        me = pwd.getpwuid(os.getuid())
        config = resolve_config(
            environ={"SUDO_USER": me.pw_name, "HOME": "/root", "USER": "root"},
            euid=0,
        )
        assert config.real_user == me.pw_name
        assert config.real_home == Path(me.pw_dir)
        assert (config.uid, config.gid) == (me.pw_uid, me.pw_gid)
        assert config.delegated
        assert config.elevated

    def test_unknown_sudo_user(self):
        with pytest.raises(ConfigError, match="not found"):
            resolve_config(environ={"SUDO_USER": "no-such-user-xyz"}, euid=0)

    def test_overrides_applied(self, tmp_path: Path):
        config = resolve_config(
            environ={"USER": "tester", "HOME": str(tmp_path)},
            overrides={"install_dir_name": "ss", "mdns_hostname": "chores"},
            euid=0,
        )
        assert config.install_root == tmp_path / "ss"
        assert config.mdns_hostname == "chores"

    def test_invalid_override_value(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Invalid installer configuration"):
            resolve_config(
                environ={"USER": "tester", "HOME": str(tmp_path)},
                overrides={"readiness_attempts": 0},
                euid=0,
            )


class TestLoadOverrides:
    def test_valid_file(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text("app_image: example/app:1.2\nreadiness_delay: 2\n")
        assert load_overrides(path) == {"app_image": "example/app:1.2", "readiness_delay": 2}

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text("")
        assert load_overrides(path) == {}

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_overrides(tmp_path / "absent.yml")

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_overrides(path)

    def test_unknown_key(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text("euid: 0\n")
        with pytest.raises(ConfigError, match="Unknown config key"):
            load_overrides(path)

    def test_bad_yaml(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text("app_image: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_overrides(path)


class TestInstallConfig:
    def _config(self, **kw) -> InstallConfig:
        base = dict(real_user="tester", real_home=Path("/home/tester"), uid=1000, gid=1000, euid=0)
        base.update(kw)
        return InstallConfig(**base)

    def test_derived_paths(self):
        config = self._config()
        assert config.data_dir == Path("/home/tester/share-space/data")
        assert config.signal_dir == Path("/home/tester/share-space/data/signal-cli")
        assert config.compose_file == Path("/home/tester/share-space/docker-compose.yml")
        assert config.installation_id_file == Path("/home/tester/share-space/data/installation_id")
        assert config.unit_path == Path("/etc/systemd/system/sharespace.service")
        assert config.state_dir == Path("/home/tester/share-space/.state")

    def test_owns_files_only_when_delegated(self):
        assert not self._config().owns_files
        assert self._config(delegated=True).owns_files
        assert not self._config(real_user="root", delegated=True).owns_files

    def test_frozen(self):
        config = self._config()
        with pytest.raises(Exception):
            config.app_image = "other"
