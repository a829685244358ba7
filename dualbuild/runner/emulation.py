import asyncio
import logging
import platform
from pathlib import Path

from dualbuild.const import ARCH_MACHINES, BINFMT_MISC_DIR
from dualbuild.exceptions import CommandError, EmulationSetupError
from dualbuild.utils import async_check_output, get_bin, run_captured

logger = logging.getLogger(__name__)

# serializes setup per (arch, builder) so concurrent runs never race on create
_locks: dict[tuple[str, str | None], asyncio.Lock] = {}


def host_arch() -> str:
    machine = platform.machine().lower()
    for arch, arch_machine in ARCH_MACHINES.items():
        if machine == arch_machine:
            return arch
    return {'x64': 'amd64', 'armv7l': 'arm', 'i686': '386'}.get(machine, machine)


class EmulationBootstrapper:
    """Makes the host able to build images for ``arch``.

    Registers a QEMU binfmt_misc handler for the target architecture and
    provisions a buildx builder backed by the docker-container driver. Both
    steps are skipped when already in place; the checks run on every setup so
    a builder removed while the server runs is recreated. Used as an async
    context manager; nothing is torn down on exit.
    """

    arch: str
    builder_name: str | None
    binfmt_image: str
    docker: str
    binfmt_dir: Path

    def __init__(
        self,
        arch: str,
        builder_name: str | None,
        binfmt_image: str,
        docker: str = 'docker',
        binfmt_dir: Path = Path(BINFMT_MISC_DIR),
    ):
        if arch not in ARCH_MACHINES:
            raise EmulationSetupError(f'Unknown architecture {arch!r}')
        self.arch = arch
        self.builder_name = builder_name
        self.binfmt_image = binfmt_image
        self.docker = docker
        self.binfmt_dir = binfmt_dir

    @property
    def needs_emulation(self) -> bool:
        return host_arch() != self.arch

    @property
    def is_registered(self) -> bool:
        return (self.binfmt_dir / f'qemu-{ARCH_MACHINES[self.arch]}').exists()

    async def register_emulator(self):
        if not self.needs_emulation:
            logger.info(f'Host is {self.arch}, emulation not needed')
            return
        if self.is_registered:
            logger.info(f'QEMU handler for {self.arch} already registered')
            return
        logger.info(f'Registering QEMU handler for {self.arch}')
        await async_check_output(
            get_bin(self.docker),
            'run',
            '--privileged',
            '--rm',
            self.binfmt_image,
            '--install',
            self.arch,
        )
        if not self.is_registered:
            raise EmulationSetupError(
                f'QEMU handler for {self.arch} missing after installation'
            )

    async def ensure_builder(self):
        if not self.builder_name:
            return
        res = await run_captured(
            get_bin(self.docker), 'buildx', 'inspect', self.builder_name
        )
        if res.returncode == 0:
            logger.info(f'Using existing buildx builder {self.builder_name}')
            return
        logger.info(f'Creating buildx builder {self.builder_name}')
        await async_check_output(
            get_bin(self.docker),
            'buildx',
            'create',
            '--name',
            self.builder_name,
            '--driver',
            'docker-container',
        )

    async def setup(self):
        lock = _locks.setdefault((self.arch, self.builder_name), asyncio.Lock())
        try:
            async with lock:
                await self.register_emulator()
                await self.ensure_builder()
        except CommandError as e:
            raise EmulationSetupError(
                f'{e}\n{e.output.strip()}'.strip()
            ) from e
        except OSError as e:
            raise EmulationSetupError(str(e)) from e

    async def __aenter__(self):
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None
