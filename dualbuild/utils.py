import asyncio
from asyncio import create_subprocess_exec

import logging
import shutil
from pathlib import Path
from pydantic import BaseModel
from subprocess import DEVNULL, PIPE, STDOUT

from dualbuild.exceptions import CommandError

logger = logging.getLogger(__name__)


def get_bin(name: str) -> str:
    abspath = shutil.which(name)
    if abspath is None:
        # resolved again by the OS at exec time, fails there if still missing
        return name
    return abspath


GIT = get_bin('git')


class ProcessOutput(BaseModel):
    returncode: int
    output: str


async def run_captured(*args: str | Path, cwd: Path | str | None = None) -> ProcessOutput:
    """Runs a command, capturing stdout and stderr interleaved.

    If the awaiting task is cancelled, the child process is killed and reaped
    before the cancellation propagates.
    """
    logger.debug(f'Running {args}')
    p = await create_subprocess_exec(
        *args, cwd=cwd, stdin=DEVNULL, stdout=PIPE, stderr=STDOUT
    )
    try:
        stdout, _ = await p.communicate()
    except asyncio.CancelledError:
        if p.returncode is None:
            logger.info(f'Killing {args[0]} (pid {p.pid})')
            p.kill()
            await p.wait()
        raise
    return ProcessOutput(
        returncode=p.returncode,
        output=stdout.decode(errors='replace'),
    )


async def async_check_output(*args: str | Path, cwd: Path | str | None = None) -> str:
    res = await run_captured(*args, cwd=cwd)
    if res.returncode:
        logger.error(f'Process exited with code {res.returncode}')
        raise CommandError(
            f'{args[0]} exited with code {res.returncode}', res.returncode, res.output
        )
    return res.output
