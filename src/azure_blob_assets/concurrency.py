from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import wait

import logging


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def gather(tasks, max_workers=DEFAULT_MAX_WORKERS):
    """Run callables concurrently and wait for every one of them.

    Returns the results in task order. If tasks failed, the remaining
    ones still run to completion, extra failures are logged and the first
    failure (in task order) is raised.
    """
    tasks = list(tasks)
    if not tasks:
        return []

    workers = max(1, min(max_workers, len(tasks)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(task) for task in tasks]
        wait(futures)

    errors = [f.exception() for f in futures if f.exception() is not None]
    if errors:
        for extra in errors[1:]:
            logger.warning(
                "Additional failure in batch of %d tasks", len(tasks), exc_info=extra
            )
        raise errors[0]
    return [f.result() for f in futures]
