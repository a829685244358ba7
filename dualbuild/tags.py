import math
from time import time
from typing import Callable

from dualbuild.exceptions import TagGenerationError


def generate_build_tag(clock: Callable[[], float] = time) -> str:
    """Returns the current UNIX second as an image tag.

    Tags from different wall-clock seconds never collide.
    """
    try:
        now = clock()
    except (OSError, OverflowError) as e:
        raise TagGenerationError(f'Clock unavailable: {e}') from e
    if not isinstance(now, (int, float)) or not math.isfinite(now) or now < 0:
        raise TagGenerationError(f'Clock returned an invalid timestamp: {now!r}')
    return str(int(now))
