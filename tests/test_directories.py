"""
Tests for the filesystem provisioner.
"""

from sharespace_installer.core.services.directories import provision_directories


class TestProvisionDirectories:
    def test_creates_tree(self, make_runner, install_config):
        data = provision_directories(make_runner("directories"))
        assert install_config.signal_dir.is_dir()
        assert data["created_dirs"] == [
            str(install_config.install_root),
            str(install_config.data_dir),
            str(install_config.signal_dir),
        ]

    def test_idempotent(self, make_runner, install_config):
        provision_directories(make_runner("directories"))
        (install_config.data_dir / "keep.db").write_text("x")

        runner = make_runner("directories")
        data = provision_directories(runner)
        assert data["created_dirs"] == []
        assert runner.rollback_plan() == []
        assert (install_config.data_dir / "keep.db").read_text() == "x"

    def test_rollback_removes_only_new(self, make_runner, install_config):
        install_config.install_root.mkdir()
        (install_config.install_root / "notes.txt").write_text("mine")

        runner = make_runner("directories")
        provision_directories(runner)
        runner.rollback()

        assert install_config.install_root.is_dir()
        assert (install_config.install_root / "notes.txt").exists()
        assert not install_config.data_dir.exists()

    def test_chown_when_delegated(self, make_runner, install_config):
        config = install_config.model_copy(update={"delegated": True})
        runner = make_runner("directories", config=config)
        provision_directories(runner)
        chown = [r for r in runner.outcome.receipts if r.action_id.endswith(":chown-root")]
        assert len(chown) == 1 and chown[0].ok

    def test_no_chown_when_not_delegated(self, make_runner, install_config):
        runner = make_runner("directories")
        provision_directories(runner)
        assert not any(r.action_id.endswith(":chown-root") for r in runner.outcome.receipts)
