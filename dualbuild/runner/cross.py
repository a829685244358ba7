import logging
from pathlib import Path

from dualbuild.runner.native import failure_diagnostics
from dualbuild.schemas import BuildJob, ErrorKind
from dualbuild.utils import get_bin, run_captured

logger = logging.getLogger(__name__)


class CrossBuildDriver:
    recipe_path: str
    context_dir: Path
    builder_name: str | None
    docker: str

    def __init__(
        self,
        recipe_path: str,
        context_dir: Path,
        builder_name: str | None = None,
        docker: str = 'docker',
    ):
        self.recipe_path = recipe_path
        self.context_dir = context_dir
        self.builder_name = builder_name
        self.docker = docker

    def build_cmd(self, platform: str) -> list[str]:
        # neither --push nor --load: the result stays in the build cache
        cmd = [
            get_bin(self.docker),
            'buildx',
            'build',
            '.',
            '--file',
            self.recipe_path,
            '--platform',
            platform,
        ]
        if self.builder_name:
            cmd.extend(('--builder', self.builder_name))
        return cmd

    async def build(self, job: BuildJob, platform: str) -> BuildJob:
        job.platform = platform
        logger.info(f'Building {self.recipe_path} for {platform}')
        try:
            res = await run_captured(*self.build_cmd(platform), cwd=self.context_dir)
        except FileNotFoundError as e:
            logger.error(f'Build engine not found: {e}')
            job.fail(ErrorKind.build_failed, f'Build engine not found: {e}')
            return job
        if res.returncode:
            logger.error(f'Build for {platform} failed with code {res.returncode}')
            job.fail(
                ErrorKind.build_failed,
                failure_diagnostics(res.output, res.returncode),
            )
        else:
            logger.info(f'Build for {platform} succeeded')
            job.succeed(res.output)
        return job
