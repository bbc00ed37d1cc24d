"""Structured session logging: one record per compilation pass with timing.

Captures, for every pass of a watch session:
- The mode it ran in and the file changes that triggered it
- Which units were recompiled
- How many files were written
- Error and warning counts
- Duration
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class PassLog:
    """Log entry for a single compilation pass."""
    number: int
    mode: str  # "full" or "incremental"
    trigger: tuple[str, ...] = ()
    affected: tuple[str, ...] = ()
    files_written: int = 0
    error_count: int = 0
    warning_count: int = 0
    started_at: float = field(default_factory=time.time)
    duration_ms: float | None = None


@dataclass
class SessionLog:
    """Aggregated log for an entire watch session."""
    project: str
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    runtime_started_at: float | None = None
    exit_code: int | None = None
    passes: list[PassLog] = field(default_factory=list)

    @property
    def pass_count(self) -> int:
        return len(self.passes)

    @property
    def full_pass_count(self) -> int:
        return sum(1 for p in self.passes if p.mode == "full")

    @property
    def total_duration_ms(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at) * 1000

    def start_pass(self, mode: str, trigger: tuple[str, ...] = ()) -> PassLog:
        entry = PassLog(number=len(self.passes) + 1, mode=mode, trigger=trigger)
        self.passes.append(entry)
        return entry

    def finish_pass(
        self,
        entry: PassLog,
        *,
        affected: tuple[str, ...],
        files_written: int,
        error_count: int,
        warning_count: int,
    ) -> None:
        entry.affected = affected
        entry.files_written = files_written
        entry.error_count = error_count
        entry.warning_count = warning_count
        entry.duration_ms = (time.time() - entry.started_at) * 1000

    def finish(self, exit_code: int) -> None:
        self.finished_at = time.time()
        self.exit_code = exit_code

    def summary(self) -> str:
        duration = f"{self.total_duration_ms:.1f}ms" if self.total_duration_ms is not None else "running"
        lines = [
            f"Session: {self.project}",
            f"Duration: {duration}",
            f"Passes: {self.pass_count} ({self.full_pass_count} full)",
            "─" * 50,
        ]
        if self.runtime_started_at is not None:
            delay = (self.runtime_started_at - self.started_at) * 1000
            lines.insert(3, f"Runtime: started after {delay:.1f}ms")
        for p in self.passes:
            dur = f"{p.duration_ms:.1f}ms" if p.duration_ms is not None else "—"
            icon = "✅" if p.error_count == 0 else "❌"
            lines.append(
                f"  {icon} #{p.number} {p.mode} [{dur}] "
                f"{p.files_written} files, {p.error_count} errors, {p.warning_count} warnings"
            )
            if p.trigger:
                lines.append(f"     changed: {', '.join(p.trigger)}")
            if p.affected:
                lines.append(f"     └─ {', '.join(p.affected)}")
        return "\n".join(lines)
