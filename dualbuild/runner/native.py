import logging
from pathlib import Path

from dualbuild.schemas import BuildJob, ErrorKind
from dualbuild.utils import get_bin, run_captured

logger = logging.getLogger(__name__)


def failure_diagnostics(output: str, returncode: int) -> str:
    if output.strip():
        return output
    return f'Build engine exited with code {returncode} without output'


class NativeBuildDriver:
    recipe_path: str
    image_name: str
    context_dir: Path
    docker: str

    def __init__(
        self,
        recipe_path: str,
        image_name: str,
        context_dir: Path,
        docker: str = 'docker',
    ):
        self.recipe_path = recipe_path
        self.image_name = image_name
        self.context_dir = context_dir
        self.docker = docker

    def image_ref(self, tag: str) -> str:
        return f'{self.image_name}:{tag}'

    def build_cmd(self, tag: str) -> list[str]:
        return [
            get_bin(self.docker),
            'build',
            '.',
            '--file',
            self.recipe_path,
            '--tag',
            self.image_ref(tag),
        ]

    async def build(self, job: BuildJob, tag: str) -> BuildJob:
        job.tag = tag
        logger.info(f'Building {self.image_ref(tag)} from {self.recipe_path}')
        try:
            res = await run_captured(*self.build_cmd(tag), cwd=self.context_dir)
        except FileNotFoundError as e:
            logger.error(f'Build engine not found: {e}')
            job.fail(ErrorKind.build_failed, f'Build engine not found: {e}')
            return job
        if res.returncode:
            logger.error(f'Native build failed with code {res.returncode}')
            job.fail(
                ErrorKind.build_failed,
                failure_diagnostics(res.output, res.returncode),
            )
        else:
            logger.info(f'Native build of {self.image_ref(tag)} succeeded')
            job.succeed(res.output)
        return job
