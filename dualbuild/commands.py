import json
import logging
import os
from pathlib import Path

from dualbuild.config import config
from dualbuild.events import parse_github_event
from dualbuild.exceptions import ConfigurationError, EmulationSetupError, TagGenerationError
from dualbuild.runner import Runner
from dualbuild.runner.cross import CrossBuildDriver
from dualbuild.runner.emulation import EmulationBootstrapper
from dualbuild.runner.native import NativeBuildDriver
from dualbuild.schemas import Architecture, BuildJob
from dualbuild.tags import generate_build_tag

logger = logging.getLogger(__name__)


def exit_status(job: BuildJob) -> int:
    if job.error_kind:
        logger.error(f'{job.error_kind.value}:\n{job.diagnostics}')
        return 1
    return 0


async def build_native(recipe_path: str | None = None) -> tuple[str, int]:
    job = BuildJob(
        architecture=Architecture.native,
        recipe_path=recipe_path or config.native_recipe,
    )
    try:
        tag = generate_build_tag()
    except TagGenerationError as e:
        logger.error(str(e))
        return '', 1
    driver = NativeBuildDriver(
        job.recipe_path,
        config.image_name,
        Path(config.context_dir),
        docker=config.docker,
    )
    await driver.build(job, tag)
    return tag, exit_status(job)


async def build_cross(recipe_path: str | None = None, arch: str | None = None) -> int:
    arch = (arch or config.foreign_arch).removeprefix('linux/')
    job = BuildJob(
        architecture=Architecture.foreign,
        recipe_path=recipe_path or config.cross_recipe,
    )
    try:
        async with EmulationBootstrapper(
            arch, config.builder_name, config.binfmt_image, docker=config.docker
        ):
            driver = CrossBuildDriver(
                job.recipe_path,
                Path(config.context_dir),
                config.builder_name,
                docker=config.docker,
            )
            await driver.build(job, f'linux/{arch}')
    except EmulationSetupError as e:
        logger.error(f'emulation setup failed: {e}')
        return 1
    return exit_status(job)


def load_github_event() -> tuple[str, dict]:
    event_name = os.getenv('GITHUB_EVENT_NAME')
    event_path = os.getenv('GITHUB_EVENT_PATH')
    if not event_name or not event_path:
        raise ConfigurationError('GITHUB_EVENT_NAME and GITHUB_EVENT_PATH must be set')
    try:
        payload = json.loads(Path(event_path).read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationError(f'Cannot read event payload: {e}')
    return event_name, payload


async def run_from_github_env() -> int:
    event_name, payload = load_github_event()
    event = parse_github_event(event_name, payload)
    if event is None:
        logger.info(f'Event {event_name} does not start a run')
        return 0
    workdir = Path(os.getenv('GITHUB_WORKSPACE') or '.').absolute()
    result = await Runner(config, workdir).run(event)
    if result is None:
        return 0
    for job in result.jobs.values():
        if job.error_kind:
            logger.error(
                f'{job.architecture.value} job: {job.error_kind.value}\n{job.diagnostics}'
            )
    return 0 if result.success else 1
