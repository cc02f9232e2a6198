import asyncio
import logging
from typing import Optional, Sequence

from ..domain.interfaces import CommandError, CommandTimeoutError, ICommandRunner
from ..domain.models import CommandResult

logger = logging.getLogger(__name__)


class AsyncCommandRunner(ICommandRunner):
    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Could not start {args[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise CommandTimeoutError(f"{args[0]} timed out after {timeout}s") from None
        except asyncio.CancelledError:
            # Client went away: don't leave an orphaned encoder running
            await self._kill(process)
            raise

        return CommandResult(
            args=list(args),
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr.decode(errors="replace"),
        )

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
        logger.warning(f"Killed subprocess {process.pid}")
