from typing import List, NamedTuple
import asyncio
import logging
from ytmux.config.settings import config

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

    def stderr_tail(self) -> str:
        return self.stderr.decode(errors="ignore").strip()[-STDERR_TAIL_CHARS:]

class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stdout: bool = True,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The child is killed and reaped on timeout or cancellation,
        so no process outlives the awaiting request.
        Raises asyncio.TimeoutError on timeout and OSError if the
        executable cannot be started.
        """
        logger.debug("Spawning: %s", " ".join(cmd))
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE if capture_stdout else asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        except (asyncio.TimeoutError, asyncio.CancelledError):
            SubprocessExecutor._kill(process)
            await process.wait()
            raise
        except Exception:
            if process.returncode is None:
                SubprocessExecutor._kill(process)
                await process.wait()
            raise

        return CompletedProcess(
            returncode=process.returncode,
            stdout=stdout or b"",
            stderr=stderr or b""
        )

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def _common_options() -> List[str]:
        cmd = [
            '--no-warnings',
            '--no-playlist',
            '--socket-timeout', str(config.ytdlp.socket_timeout),
        ]

        if not config.ytdlp.enable_live_streams:
            cmd.extend(['--match-filter', '!is_live'])

        if config.ytdlp.js_runtime:
            cmd.extend(['--js-runtimes', config.ytdlp.js_runtime])

        return cmd

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for dumping the format catalog"""
        cmd = [config.ytdlp.binary, '--dump-single-json']
        cmd.extend(YTDLPCommandBuilder._common_options())
        cmd.extend(['--', url])
        return cmd

    @staticmethod
    def build_fetch_command(url: str, format_id: str, dest_path: str) -> List[str]:
        """Build command writing exactly one format to dest_path"""
        cmd = [
            config.ytdlp.binary,
            '--format', format_id,
            '--output', dest_path,
            # Write straight to dest_path, no .part sibling to clean up
            '--no-part',
            '--no-continue',
            '--no-mtime',
            '--no-progress',
            '--quiet',
        ]
        cmd.extend(YTDLPCommandBuilder._common_options())
        cmd.extend(['--', url])
        return cmd

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ytdlp.binary, '--version']

class FFmpegCommandBuilder:
    """Build ffmpeg commands"""

    @staticmethod
    def build_mux_command(video_path: str, audio_path: str, out_path: str) -> List[str]:
        """Stream-copy the first video track and first audio track into out_path"""
        return [
            config.ffmpeg.binary,
            '-hide_banner',
            '-nostdin',
            '-loglevel', 'error',
            '-y',
            '-i', video_path,
            '-i', audio_path,
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-c:v', 'copy',
            '-c:a', 'copy',
            out_path,
        ]

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ffmpeg.binary, '-version']

async def detect_version(cmd: List[str]) -> str:
    """First line of a tool's version output, or 'unavailable'"""
    try:
        result = await SubprocessExecutor.run(cmd, timeout=10.0, capture_stderr=False)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning("Version probe %s failed: %s", cmd[0], e)
        return "unavailable"

    if result.returncode != 0:
        return "unavailable"

    lines = result.stdout.decode(errors="ignore").strip().splitlines()
    return lines[0] if lines else "unknown"
