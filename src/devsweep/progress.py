"""Live status of many concurrent scanners.

State changes and rendering are separated: ``render_lines()`` is a pure
function of the scanner states and the injected clock, and redraws happen
only on ``tick()``, driven either by the caller or by a ticker thread.
"""

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.text import Text

from devsweep.display import format_size
from devsweep.models import ProgressSummary, ScannerState, ScanStatus

log = logging.getLogger(__name__)

REFRESH_INTERVAL = 0.08  # seconds between redraws
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

_STATUS_ORDER = {
    ScanStatus.SCANNING: 0,
    ScanStatus.COMPLETE: 1,
    ScanStatus.ERROR: 2,
    ScanStatus.PENDING: 3,
}


class ParallelProgressTracker:
    """
    Tracks a fixed set of scanners through pending, scanning and a terminal state.

    Updates for names outside the initial set are ignored, and a scanner
    that reached complete or error never changes again.
    """

    def __init__(
        self,
        scanner_names: Iterable[str],
        console: Optional[Console] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._states = {name: ScannerState(name=name) for name in scanner_names}
        self._name_width = max((len(n) for n in self._states), default=0)
        self._clock = clock
        self._lock = threading.Lock()
        self._frame = 0
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

        self.console = console or Console(stderr=True)
        self._live: Optional[Live] = None
        self._ticker: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._stopped = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, auto_refresh: bool = True) -> None:
        """Begin the session and draw the first frame."""
        self._start_time = self._clock()
        self._live = Live(
            self._renderable(),
            console=self.console,
            auto_refresh=False,
            transient=False,
        )
        self._live.start()

        if auto_refresh:
            self._ticker = threading.Thread(target=self._run_ticker, name="devsweep-progress", daemon=True)
            self._ticker.start()

    def _run_ticker(self) -> None:
        while not self._stop_event.wait(REFRESH_INTERVAL):
            self.tick()

    def tick(self) -> None:
        """Advance the spinner and redraw."""
        with self._lock:
            self._frame += 1
        if self._live is not None and not self._stopped:
            self._live.update(self._renderable(), refresh=True)

    def stop(self) -> None:
        """Stop refreshing and draw the final summary. Safe to call twice."""
        if self._stopped:
            return
        self._stopped = True
        self._stop_event.set()
        if self._ticker is not None:
            self._ticker.join()
            self._ticker = None

        self._end_time = self._clock()
        if self._live is not None:
            self._live.update(self._renderable(final=True), refresh=True)
            self._live.stop()
            self._live = None

    # =========================================================================
    # State changes
    # =========================================================================

    def update(
        self,
        name: str,
        status: ScanStatus,
        size: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record a status change for one scanner."""
        with self._lock:
            state = self._states.get(name)
            if state is None:
                log.debug("Ignoring progress update for unknown scanner %s", name)
                return
            if state.is_finished:
                return

            now = self._clock()
            changes: dict = {"status": status}
            if size is not None:
                changes["size_bytes"] = size
            if error:
                changes["error"] = error
            if status == ScanStatus.SCANNING and state.start_time is None:
                changes["start_time"] = now
            if status in (ScanStatus.COMPLETE, ScanStatus.ERROR):
                changes["end_time"] = now

            self._states[name] = state.model_copy(update=changes)

    def start_scanner(self, name: str) -> None:
        self.update(name, ScanStatus.SCANNING)

    def complete(self, name: str, size: Optional[int] = None) -> None:
        self.update(name, ScanStatus.COMPLETE, size=size)

    def fail(self, name: str, error: str) -> None:
        self.update(name, ScanStatus.ERROR, error=error)

    def get_state(self, name: str) -> Optional[ScannerState]:
        with self._lock:
            return self._states.get(name)

    # =========================================================================
    # Rendering
    # =========================================================================

    def _elapsed(self, since: Optional[float], until: Optional[float] = None) -> float:
        if since is None:
            return 0.0
        return max((until if until is not None else self._clock()) - since, 0.0)

    def render_lines(self, final: bool = False) -> list[str]:
        """
        Render the current state as rich markup lines.

        Returns:
            A header line followed by one line per scanner, ordered
            scanning, complete, error, pending. The final render omits
            pending scanners and reports the total size.
        """
        with self._lock:
            states = list(self._states.values())
            frame = self._frame

        counts = {status: 0 for status in ScanStatus}
        for state in states:
            counts[state.status] += 1
        elapsed = self._elapsed(self._start_time, self._end_time if final else None)

        if final:
            total_size = sum(s.size_bytes or 0 for s in states)
            header = (
                f"[green]✓ Scan complete: {counts[ScanStatus.COMPLETE]}/{len(states)} caches "
                f"({format_size(total_size)}) in {elapsed:.1f}s[/green]"
            )
        else:
            header = (
                f"[dim]Scanning {len(states)} cache types "
                f"({counts[ScanStatus.SCANNING]} active, {counts[ScanStatus.COMPLETE]} complete, "
                f"{counts[ScanStatus.ERROR]} errors) [{elapsed:.1f}s][/dim]"
            )

        lines = [header]
        for state in sorted(states, key=lambda s: _STATUS_ORDER[s.status]):
            if final and state.status == ScanStatus.PENDING:
                continue
            lines.append(self._format_line(state, frame))
        return lines

    def _format_line(self, state: ScannerState, frame: int) -> str:
        name = escape(state.name.ljust(self._name_width))

        if state.status == ScanStatus.PENDING:
            return f"  [bright_black]○[/bright_black] {name}  [bright_black]pending[/bright_black]"

        if state.status == ScanStatus.SCANNING:
            spinner = SPINNER_FRAMES[frame % len(SPINNER_FRAMES)]
            running = self._elapsed(state.start_time)
            return f"  [cyan]{spinner}[/cyan] {name}  [cyan]scanning[/cyan][dim] ({running:.1f}s)[/dim]"

        if state.status == ScanStatus.COMPLETE:
            detail = ""
            if state.size_bytes is not None:
                detail += f" - {format_size(state.size_bytes)}"
            if state.start_time is not None and state.end_time is not None:
                detail += f" \\[{state.end_time - state.start_time:.1f}s]"
            return f"  [green]✓[/green] {name}  [green]complete[/green][dim]{detail}[/dim]"

        detail = f" - {escape(state.error)}" if state.error else ""
        return f"  [red]✗[/red] {name}  [red]error[/red][dim]{detail}[/dim]"

    def _renderable(self, final: bool = False) -> Text:
        return Text.from_markup("\n".join(self.render_lines(final)))

    def get_summary(self) -> ProgressSummary:
        """Counts, total size and duration of the session so far."""
        with self._lock:
            states = list(self._states.values())
        return ProgressSummary(
            total=len(states),
            complete=sum(1 for s in states if s.status == ScanStatus.COMPLETE),
            errors=sum(1 for s in states if s.status == ScanStatus.ERROR),
            total_size=sum(s.size_bytes or 0 for s in states),
            duration=self._elapsed(self._start_time, self._end_time),
        )
