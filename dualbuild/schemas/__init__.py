from enum import Enum
from pydantic import BaseModel, ConfigDict


class EventKind(str, Enum):
    push = 'push'
    pull_request = 'pull_request'


class Architecture(str, Enum):
    native = 'native'
    foreign = 'foreign'


class JobOutcome(str, Enum):
    pending = 'pending'
    success = 'success'
    failure = 'failure'


class ErrorKind(str, Enum):
    # ordered from least to most severe
    build_failed = 'build failed'
    tag_generation_failed = 'tag generation failed'
    emulation_setup_failed = 'emulation setup failed'
    internal_error = 'internal error'


ERROR_SEVERITY = {kind: i for i, kind in enumerate(ErrorKind)}


class TriggerEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    branch: str


class CheckoutInfo(BaseModel):
    provider: str
    clone_url: str
    repo_name: str
    commit_sha: str
    installation_id: int | None = None


class BuildJob(BaseModel):
    architecture: Architecture
    recipe_path: str
    outcome: JobOutcome = JobOutcome.pending
    error_kind: ErrorKind | None = None
    diagnostics: str = ''
    tag: str | None = None
    platform: str | None = None

    @property
    def finished(self) -> bool:
        return self.outcome != JobOutcome.pending

    def _complete(self, outcome: JobOutcome):
        if self.finished:
            raise ValueError(
                f'{self.architecture.value} job already completed with '
                f'{self.outcome.value}'
            )
        self.outcome = outcome

    def succeed(self, diagnostics: str = ''):
        self._complete(JobOutcome.success)
        self.diagnostics = diagnostics

    def fail(self, error_kind: ErrorKind, diagnostics: str):
        self._complete(JobOutcome.failure)
        self.error_kind = error_kind
        self.diagnostics = diagnostics


class RunResult(BaseModel):
    event: TriggerEvent
    jobs: dict[Architecture, BuildJob]

    @property
    def success(self) -> bool:
        return all(job.outcome == JobOutcome.success for job in self.jobs.values())

    @property
    def conclusion(self) -> str:
        return 'success' if self.success else 'failure'

    @property
    def worst_error(self) -> ErrorKind | None:
        kinds = [job.error_kind for job in self.jobs.values() if job.error_kind]
        if not kinds:
            return None
        return max(kinds, key=ERROR_SEVERITY.__getitem__)

    def summary(self) -> str:
        lines = []
        for arch, job in self.jobs.items():
            line = f'{arch.value}: {job.outcome.value}'
            if job.tag:
                line += f' (tag {job.tag})'
            if job.platform:
                line += f' ({job.platform})'
            if job.error_kind:
                line += f' [{job.error_kind.value}]'
            lines.append(line)
        return '\n'.join(lines)
