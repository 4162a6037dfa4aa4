import asyncio
import logging
from pathlib import Path
from typing import Sequence

from app.exceptions import WorkerExecutionError, WorkerLaunchError
from app.schemas import WorkerInvocationResult

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


async def _drain(stream: asyncio.StreamReader) -> str:
    chunks: list[bytes] = []
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


async def _cancel(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


async def invoke_worker(
    command: Sequence[str],
    artifact_path: Path,
    model_dir: Path,
) -> WorkerInvocationResult:
    """Run the worker on one artifact and collect both of its output streams.

    stdout and stderr are read by two concurrent readers; the exit status is
    only collected after both have hit EOF, so a worker that writes a lot
    before exiting cannot block on a full pipe.

    Raises:
        WorkerLaunchError: if the process cannot be started.
        WorkerExecutionError: if reading its output fails.
    """
    argv = [*command, str(artifact_path), str(model_dir)]
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("Could not start worker %s: %s", argv[0], e)
        raise WorkerLaunchError(f"{type(e).__name__}: {e}") from e

    logger.info("Started worker pid=%s for %s", process.pid, artifact_path)
    readers = [
        asyncio.create_task(_drain(process.stdout)),
        asyncio.create_task(_drain(process.stderr)),
    ]
    try:
        stdout, stderr = await asyncio.gather(*readers)
    except Exception as e:
        logger.exception("Reading worker output failed (pid=%s)", process.pid)
        await _cancel(readers)
        await _kill(process)
        raise WorkerExecutionError(f"{type(e).__name__}: {e}") from e
    except asyncio.CancelledError:
        await _cancel(readers)
        await _kill(process)
        raise

    returncode = await process.wait()
    return WorkerInvocationResult(returncode=returncode, stdout=stdout, stderr=stderr)
