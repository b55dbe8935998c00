"""Safe subprocess execution utilities."""

import asyncio
from dataclasses import dataclass


@dataclass
class ShellResult:
    """Result from a shell command execution."""

    code: int
    out: str
    err: str

    @property
    def success(self) -> bool:
        """Check if the command succeeded (exit code 0)."""
        return self.code == 0

    def __bool__(self) -> bool:
        """Allow using result in boolean context (True if successful)."""
        return self.success


async def run(cmd: list[str], timeout: float = 10) -> ShellResult:
    """
    Execute a command without shell interpretation and wait for it.

    Args:
        cmd: Command and arguments as a list of strings (e.g., ['ls', '-la', '/tmp'])
        timeout: Maximum execution time in seconds (default: 10)

    Returns:
        ShellResult with exit code, stdout, and stderr

    Raises:
        TimeoutError: If command execution exceeds timeout (the process is killed)
        FileNotFoundError: If the command executable is not found

    Example:
        >>> result = await run(['/usr/bin/mdfind', 'kind:app'])
        >>> if result.success:
        ...     print(result.out)
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        await _kill(proc)
        raise TimeoutError(
            f"Command timed out after {timeout}s: {' '.join(cmd)}"
        ) from e
    except BaseException:
        # Cancelled callers must not leave the child running
        await _kill(proc)
        raise

    return ShellResult(
        code=proc.returncode if proc.returncode is not None else -1,
        out=_normalize_output(stdout.decode("utf-8", errors="replace")),
        err=_normalize_output(stderr.decode("utf-8", errors="replace"))
    )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await asyncio.shield(proc.wait())


def _normalize_output(text: str) -> str:
    """
    Normalize command output: convert line endings and trim whitespace.

    Args:
        text: Raw output from subprocess

    Returns:
        Normalized string with consistent line endings and trimmed whitespace
    """
    if not text:
        return ""

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return normalized.strip()
