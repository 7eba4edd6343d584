"""
Console logging for PopLingo.

Every line is timestamped (wall clock + seconds since start) and tagged with
a colour-coded category so background work is easy to follow:

- ENV:  .env loading, API key and model configuration
- API:  OpenAI requests and responses
- IMG:  illustration generation
- AUD:  speech synthesis, PCM decoding, playback
- UI:   view switches and user actions
- TASK: background threads
- OK / WARN / ERR / INFO / DBG: general status

Usage:
    from poplingo.logger import logger, Timer

    logger.api_call("chat.completions.create", model="gpt-4o-mini")
    with Timer() as timer:
        ...
    logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)
"""

import sys
import time
import traceback
from datetime import datetime
from typing import Optional, TextIO

# Force UTF-8 so the status glyphs (✓, ✗, ⠋) survive Windows consoles.
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8")


class ColorCodes:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"


def _with_duration(text: str, duration_ms: Optional[float]) -> str:
    return f"{text} ({duration_ms:.0f}ms)" if duration_ms else text


class DebugLogger:
    """
    Categorised, colour-coded console logger.

    Messages go to stdout; tracebacks requested with ``exc_info=True`` go to
    stderr, indented under the message that triggered them.
    """

    def __init__(self, enabled: bool = True, stream: Optional[TextIO] = None):
        self.enabled = enabled
        self._stream = stream
        self._start_time = datetime.now()

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so test runners that swap sys.stdout still capture us.
        return self._stream or sys.stdout

    def _timestamp(self) -> str:
        now = datetime.now()
        elapsed = (now - self._start_time).total_seconds()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d} (+{elapsed:>6.1f}s)"

    def _log(self, category: str, color: str, message: str, exc_info: bool = False) -> None:
        if not self.enabled:
            return

        timestamp = self._timestamp()
        prefix = f"{ColorCodes.DIM}{timestamp}{ColorCodes.RESET}"
        tag = f"{color}{ColorCodes.BOLD}[{category:>4}]{ColorCodes.RESET}"
        padding = " " * (len(timestamp) + 8)

        first, *rest = message.split("\n")
        print(f"{prefix} {tag} {first}", file=self.stream, flush=True)
        for line in rest:
            print(f"{ColorCodes.DIM}{padding}{ColorCodes.RESET}{line}", file=self.stream, flush=True)

        if exc_info:
            for line in traceback.format_exc().split("\n"):
                if line.strip():
                    print(f"{ColorCodes.DIM}{padding}{ColorCodes.RED}{line}{ColorCodes.RESET}",
                          file=sys.stderr, flush=True)

    # === Environment/Configuration ===
    def env(self, message: str, **kwargs) -> None:
        """Log environment/configuration messages (dotenv, API key, models)."""
        self._log("ENV", ColorCodes.MAGENTA, message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.GREEN, f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.RED, f"✗ {message}", **kwargs)

    # === API Calls ===
    def api(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.CYAN, message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        """Log an outgoing request."""
        model_info = f" (model: {model})" if model else ""
        self._log("API", ColorCodes.CYAN, f"→ Calling {endpoint}{model_info}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        """Log a response received."""
        self._log("API", ColorCodes.BRIGHT_CYAN,
                  _with_duration(f"← Response from {endpoint}", duration_ms), **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Illustrations ===
    def img_start(self, prompt: str, **kwargs) -> None:
        """Log start of image generation (long prompts are truncated)."""
        display_prompt = prompt[:60] + "..." if len(prompt) > 60 else prompt
        self._log("IMG", ColorCodes.YELLOW, f"→ Generating: \"{display_prompt}\"", **kwargs)

    def img_complete(self, size_bytes: int, duration_ms: Optional[float] = None, **kwargs) -> None:
        self._log("IMG", ColorCodes.BRIGHT_GREEN,
                  _with_duration(f"✓ Received {size_bytes} bytes", duration_ms), **kwargs)

    def img_error(self, message: str, **kwargs) -> None:
        self._log("IMG", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Audio ===
    def aud(self, message: str, **kwargs) -> None:
        self._log("AUD", ColorCodes.BRIGHT_MAGENTA, message, **kwargs)

    def aud_error(self, message: str, **kwargs) -> None:
        self._log("AUD", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === UI Events ===
    def ui(self, message: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BLUE, message, **kwargs)

    def ui_transition(self, from_state: str, to_state: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BRIGHT_BLUE, f"{from_state} → {to_state}", **kwargs)

    # === Background Tasks ===
    def task_start(self, task_name: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, f"⚡ Starting: {task_name}", **kwargs)

    def task_complete(self, task_name: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        self._log("TASK", ColorCodes.BRIGHT_GREEN,
                  _with_duration(f"✓ Completed: {task_name}", duration_ms), **kwargs)

    def task_error(self, task_name: str, error: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.BRIGHT_RED, f"✗ Failed: {task_name} - {error}", **kwargs)

    # === General Status ===
    def success(self, message: str, **kwargs) -> None:
        self._log("OK", ColorCodes.BRIGHT_GREEN, f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("WARN", ColorCodes.BRIGHT_YELLOW, f"⚠ {message}", **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("ERR", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("INFO", ColorCodes.WHITE, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log("DBG", ColorCodes.DIM, message, **kwargs)

    # === Separators/Formatting ===
    def separator(self, title: Optional[str] = None) -> None:
        if not self.enabled:
            return

        line = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        print(f"\n{ColorCodes.DIM}{line}{ColorCodes.RESET}\n", file=self.stream, flush=True)

    def banner(self, text: str) -> None:
        if not self.enabled:
            return

        width = max(60, len(text) + 4)
        border = "═" * width
        padding = " " * ((width - len(text)) // 2)

        print(f"\n{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}", file=self.stream, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}║{padding}{ColorCodes.BOLD}{text}{ColorCodes.RESET}"
              f"{ColorCodes.BRIGHT_CYAN}{padding}║{ColorCodes.RESET}", file=self.stream, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}\n", file=self.stream, flush=True)


# Global logger instance
logger = DebugLogger(enabled=True)


class Timer:
    """Context manager for timing operations."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.duration_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        if self.start_time:
            self.duration_ms = (time.perf_counter() - self.start_time) * 1000
