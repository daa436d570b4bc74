import asyncio
from typing import List, NamedTuple
from mediaproxy.config.settings import config

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Run a command to completion, killing it on timeout or cancellation"""

    @staticmethod
    async def run(cmd: List[str], timeout: float) -> CompletedProcess:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        return CompletedProcess(process.returncode, stdout, stderr)

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.extractor.binary, '--version']

    @staticmethod
    def build_extract_command(url: str) -> List[str]:
        """Dump every format of a post as one JSON document, no download"""
        return [
            config.extractor.binary,
            '--dump-single-json',
            '--no-warnings',
            '--skip-download',
            '--socket-timeout', str(config.extractor.socket_timeout),
            '--retries', str(config.extractor.retries),
            url,
        ]
