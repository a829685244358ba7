from pathlib import Path
from unittest.mock import AsyncMock, patch

from dualbuild.runner.native import NativeBuildDriver
from dualbuild.schemas import Architecture, BuildJob, ErrorKind, JobOutcome
from tests.fakes import FakeEngine


def make_driver() -> NativeBuildDriver:
    return NativeBuildDriver(
        '.github/workflows/Dockerfile', 'ubuntu-bolt', Path('/src'), docker='docker'
    )


def make_job() -> BuildJob:
    return BuildJob(
        architecture=Architecture.native, recipe_path='.github/workflows/Dockerfile'
    )


class TestNativeBuildDriver:
    def test_command(self):
        cmd = make_driver().build_cmd('1700000000')
        assert cmd[1:] == [
            'build',
            '.',
            '--file',
            '.github/workflows/Dockerfile',
            '--tag',
            'ubuntu-bolt:1700000000',
        ]

    async def test_zero_exit_is_success(self):
        engine = FakeEngine(0, 'Successfully built')
        with patch('dualbuild.runner.native.run_captured', engine):
            job = await make_driver().build(make_job(), '1700000000')
        assert job.outcome == JobOutcome.success
        assert job.tag == '1700000000'
        assert len(engine.calls) == 1

    async def test_nonzero_exit_is_failure_with_output(self):
        engine = FakeEngine(1, 'E: Unable to locate package foo\n')
        with patch('dualbuild.runner.native.run_captured', engine):
            job = await make_driver().build(make_job(), '1')
        assert job.outcome == JobOutcome.failure
        assert job.error_kind == ErrorKind.build_failed
        assert job.diagnostics == 'E: Unable to locate package foo\n'

    async def test_silent_failure_still_has_diagnostics(self):
        with patch('dualbuild.runner.native.run_captured', FakeEngine(137, '')):
            job = await make_driver().build(make_job(), '1')
        assert job.outcome == JobOutcome.failure
        assert '137' in job.diagnostics

    async def test_whitespace_only_output_is_synthesized(self):
        with patch('dualbuild.runner.native.run_captured', FakeEngine(1, '\n  \n')):
            job = await make_driver().build(make_job(), '1')
        assert 'code 1' in job.diagnostics

    async def test_missing_engine(self):
        engine = AsyncMock(side_effect=FileNotFoundError('docker'))
        with patch('dualbuild.runner.native.run_captured', engine):
            job = await make_driver().build(make_job(), '1')
        assert job.error_kind == ErrorKind.build_failed
        assert 'not found' in job.diagnostics
