import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from dualbuild.config import Config
from dualbuild.exceptions import EmulationSetupError, TagGenerationError
from dualbuild.runner.cross import CrossBuildDriver
from dualbuild.runner.emulation import EmulationBootstrapper
from dualbuild.runner.native import NativeBuildDriver
from dualbuild.schemas import Architecture, BuildJob, ErrorKind, RunResult, TriggerEvent
from dualbuild.tags import generate_build_tag
from dualbuild.trigger import TriggerEvaluator

logger = logging.getLogger(__name__)

Reporter = Callable[[RunResult], Awaitable[None]]


class RunState(Enum):
    idle = 'idle'
    triggered = 'triggered'
    running = 'running'
    aggregated = 'aggregated'
    done = 'done'


class Runner:
    config: Config
    workdir: Path
    trigger: TriggerEvaluator
    reporter: Reporter | None
    state: RunState
    native_running: bool
    cross_running: bool
    jobs: dict[Architecture, BuildJob]

    def __init__(
        self,
        config: Config,
        workdir: Path,
        reporter: Reporter | None = None,
    ):
        self.config = config
        self.workdir = workdir
        self.trigger = TriggerEvaluator(config.branch)
        self.reporter = reporter
        self.state = RunState.idle
        self.native_running = False
        self.cross_running = False
        self.jobs = {}

    @property
    def context_dir(self) -> Path:
        return self.workdir / self.config.context_dir

    async def run_native(self, job: BuildJob) -> BuildJob:
        self.native_running = True
        try:
            tag = generate_build_tag()
            driver = NativeBuildDriver(
                job.recipe_path,
                self.config.image_name,
                self.context_dir,
                docker=self.config.docker,
            )
            await driver.build(job, tag)
        except TagGenerationError as e:
            logger.error(f'Native path aborted: {e}')
            job.fail(ErrorKind.tag_generation_failed, str(e))
        except Exception as e:
            logger.exception('Native path crashed')
            job.fail(ErrorKind.internal_error, f'{type(e).__name__}: {e}')
        finally:
            self.native_running = False
        return job

    async def run_cross(self, job: BuildJob) -> BuildJob:
        self.cross_running = True
        try:
            async with EmulationBootstrapper(
                self.config.foreign_arch,
                self.config.builder_name,
                self.config.binfmt_image,
                docker=self.config.docker,
            ):
                driver = CrossBuildDriver(
                    job.recipe_path,
                    self.context_dir,
                    self.config.builder_name,
                    docker=self.config.docker,
                )
                await driver.build(job, self.config.foreign_platform)
        except EmulationSetupError as e:
            logger.error(f'Emulation setup failed: {e}')
            job.fail(ErrorKind.emulation_setup_failed, str(e))
        except Exception as e:
            logger.exception('Cross path crashed')
            job.fail(ErrorKind.internal_error, f'{type(e).__name__}: {e}')
        finally:
            self.cross_running = False
        return job

    async def run(self, event: TriggerEvent) -> RunResult | None:
        if self.state != RunState.idle:
            raise ValueError(f'Runner already used (state {self.state.value})')
        if not self.trigger.qualifies(event):
            logger.info(
                f'Ignoring {event.kind.value} to {event.branch!r}, '
                f'runs only start for {self.trigger.branch!r}'
            )
            return None
        self.state = RunState.triggered
        logger.info(f'Starting run for {event.kind.value} to {event.branch!r}')

        self.jobs = {
            Architecture.native: BuildJob(
                architecture=Architecture.native,
                recipe_path=self.config.native_recipe,
            ),
            Architecture.foreign: BuildJob(
                architecture=Architecture.foreign,
                recipe_path=self.config.cross_recipe,
            ),
        }
        self.state = RunState.running
        # cancelling this coroutine cancels both paths
        await asyncio.gather(
            self.run_native(self.jobs[Architecture.native]),
            self.run_cross(self.jobs[Architecture.foreign]),
        )
        self.state = RunState.aggregated

        result = RunResult(event=event, jobs=self.jobs)
        logger.info(f'Run finished: {result.conclusion}\n{result.summary()}')
        if self.reporter is not None:
            await self.reporter(result)
        self.state = RunState.done
        return result
