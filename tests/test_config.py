from pathlib import Path

import pytest
from pydantic import ValidationError

from dualbuild.config import Config, load_config


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.branch == 'main'
        assert config.foreign_arch == 'arm64'
        assert config.foreign_platform == 'linux/arm64'
        assert config.native_recipe == '.github/workflows/Dockerfile'
        assert config.cross_recipe == '.github/workflows/Dockerfile.aarch64'

    def test_platform_prefix_accepted(self):
        assert Config(foreign_arch='linux/s390x').foreign_arch == 's390x'

    def test_unknown_arch_rejected(self):
        with pytest.raises(ValidationError, match='unsupported architecture'):
            Config(foreign_arch='vax')

    def test_repos_dir_derived_from_data_dir(self, tmp_path):
        config = Config(data_dir=tmp_path)
        assert config.repos_dir == tmp_path / 'repos'

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv('DUALBUILD_BRANCH', 'trunk')
        monkeypatch.setenv('DUALBUILD_FOREIGN_ARCH', 'ppc64le')
        config = Config()
        assert config.branch == 'trunk'
        assert config.foreign_arch == 'ppc64le'

    def test_yaml_config_file(self, tmp_path, monkeypatch):
        config_dir = tmp_path / 'dualbuild'
        config_dir.mkdir()
        (config_dir / 'config.yml').write_text('branch: release\nimage_name: bolt\n')
        monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))
        config = load_config()
        assert config.branch == 'release'
        assert config.image_name == 'bolt'

    def test_empty_yaml_config_file(self, tmp_path, monkeypatch):
        (tmp_path / 'dualbuild').mkdir()
        (tmp_path / 'dualbuild' / 'config.yml').write_text('')
        monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))
        assert load_config().branch == 'main'
