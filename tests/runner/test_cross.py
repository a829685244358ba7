from pathlib import Path
from unittest.mock import patch

from dualbuild.runner.cross import CrossBuildDriver
from dualbuild.schemas import Architecture, BuildJob, ErrorKind, JobOutcome
from tests.fakes import FakeEngine


def make_job() -> BuildJob:
    return BuildJob(
        architecture=Architecture.foreign,
        recipe_path='.github/workflows/Dockerfile.aarch64',
    )


class TestCrossBuildDriver:
    def test_command_targets_platform_without_output(self):
        driver = CrossBuildDriver(
            '.github/workflows/Dockerfile.aarch64', Path('/src'), 'dualbuild'
        )
        cmd = driver.build_cmd('linux/arm64')
        assert cmd[1:3] == ['buildx', 'build']
        assert cmd[cmd.index('--platform') + 1] == 'linux/arm64'
        assert cmd[cmd.index('--builder') + 1] == 'dualbuild'
        assert '--push' not in cmd
        assert '--load' not in cmd
        assert '--tag' not in cmd

    def test_command_without_builder(self):
        driver = CrossBuildDriver('Dockerfile', Path('/src'))
        assert '--builder' not in driver.build_cmd('linux/arm64')

    async def test_zero_exit_is_success(self):
        driver = CrossBuildDriver('Dockerfile', Path('/src'))
        with patch('dualbuild.runner.cross.run_captured', FakeEngine(0)):
            job = await driver.build(make_job(), 'linux/arm64')
        assert job.outcome == JobOutcome.success
        assert job.platform == 'linux/arm64'
        assert job.tag is None

    async def test_nonzero_exit_is_failure(self):
        driver = CrossBuildDriver('Dockerfile', Path('/src'))
        engine = FakeEngine(1, 'exec /bin/sh: exec format error')
        with patch('dualbuild.runner.cross.run_captured', engine):
            job = await driver.build(make_job(), 'linux/arm64')
        assert job.outcome == JobOutcome.failure
        assert job.error_kind == ErrorKind.build_failed
        assert 'exec format error' in job.diagnostics
