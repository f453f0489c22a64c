"""Reports produced by maintenance jobs and imports."""

from pydantic import BaseModel, Field


class JobReport(BaseModel):
    """Outcome of a maintenance job.

    ``actions`` lists every write the job performed (or, in a dry run, would
    have performed), so dry and live runs print the same plan.
    """

    job: str
    dry_run: bool = False
    counts: dict[str, int] = Field(default_factory=dict)
    actions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    def count(self, key: str, amount: int = 1) -> None:
        self.counts[key] = self.counts.get(key, 0) + amount

    def action(self, message: str) -> None:
        self.actions.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def ok(self) -> bool:
        return not self.errors

    def lines(self) -> list[str]:
        """Human-readable summary for the command line."""
        header = f"{self.job}{' (dry run)' if self.dry_run else ''}"
        out = [header, "-" * len(header)]
        out.extend(f"  {msg}" for msg in self.actions)
        out.extend(f"  WARNING: {msg}" for msg in self.warnings)
        out.extend(f"  ERROR: {msg}" for msg in self.errors)
        out.extend(f"{key}: {value}" for key, value in sorted(self.counts.items()))
        return out


class ImportRowError(BaseModel):
    row: int
    message: str


class ImportResult(BaseModel):
    """Outcome of a CSV registration import."""

    total_rows: int = 0
    created: int = 0
    merged: int = 0
    failed: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
