"""
File-based storage for a plan, its completions and earned badges.

Handles reading and writing the plan JSON, the completions JSONL file
and the earned-badge record that live side by side in one directory.
"""

import json
import warnings
from pathlib import Path

from ..core.models import CompletionRecord, Ledger, TrainingPlan
from ..core.progression import ledger_from_records, merge_earned_badges
from .serializers import (
    ValidationError,
    completion_to_json_line,
    dict_to_training_plan,
    json_line_to_completion,
    plan_to_json,
)


class PlanStore:
    """
    Manages a training plan and its completion history on disk.

    Layout (same directory as the plan file):
    - plan.json: the plan, either schema
    - completions.jsonl: one completion row per line
    - badges.json: earned badge ids mapped to their earned_at timestamp
    """

    def __init__(self, plan_path: str | Path):
        """
        Initialize the plan store.

        Args:
            plan_path: Path to the plan JSON file
        """
        self.plan_path = Path(plan_path)
        self.completions_path = self.plan_path.parent / "completions.jsonl"
        self.badges_path = self.plan_path.parent / "badges.json"

    def exists(self) -> bool:
        """Check if the plan file exists."""
        return self.plan_path.exists()

    def load_plan(self) -> TrainingPlan:
        """
        Load the plan.

        Raises:
            FileNotFoundError: If the plan file doesn't exist
            ValidationError: If the file is not valid JSON
            MalformedPlanError: If the JSON does not describe a plan
        """
        if not self.plan_path.exists():
            raise FileNotFoundError(f"Plan file not found: {self.plan_path}")

        try:
            with open(self.plan_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {self.plan_path}: {e}") from e
        return dict_to_training_plan(data)

    def save_plan(self, plan: TrainingPlan, path: str | Path | None = None) -> Path:
        """
        Write the plan as JSON.

        Args:
            plan: Plan to save
            path: Destination (default: this store's plan path)

        Returns:
            Path written
        """
        target = Path(path) if path is not None else self.plan_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(plan_to_json(plan))
            f.write("\n")
        return target

    def load_completions(self) -> list[CompletionRecord]:
        """
        Load completion rows.

        Malformed lines are skipped with a warning; a missing file means no
        completions.
        """
        if not self.completions_path.exists():
            return []

        records: list[CompletionRecord] = []
        with open(self.completions_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json_line_to_completion(line))
                except (ValidationError, ValueError) as e:
                    warnings.warn(
                        f"Skipping line {line_num} in {self.completions_path}: {e}",
                        stacklevel=2,
                    )
        return records

    def load_ledger(self) -> Ledger:
        return ledger_from_records(self.load_completions())

    def _write_completions(self, records: list[CompletionRecord]) -> None:
        self.completions_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.completions_path, "w", encoding="utf-8") as f:
            for record in records:
                f.write(completion_to_json_line(record) + "\n")

    def toggle_completion(self, record: CompletionRecord) -> bool:
        """
        Toggle a completion row by key.

        Adds ``record`` when its key has no row; otherwise removes every row
        with that key.

        Returns:
            True if the workout is now completed, False if it was un-completed
        """
        records = self.load_completions()
        remaining = [r for r in records if r.key != record.key]
        if len(remaining) == len(records):
            remaining.append(record)
            self._write_completions(remaining)
            return True
        self._write_completions(remaining)
        return False

    def load_earned_badges(self) -> dict[str, str]:
        """
        Load earned badges (id -> earned_at).

        Returns:
            Mapping, empty if the file is missing or unreadable
        """
        if not self.badges_path.exists():
            return {}
        try:
            with open(self.badges_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            warnings.warn(f"Ignoring unreadable badge file {self.badges_path}", stacklevel=2)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def record_earned_badges(self, badge_ids: list[str], earned_at: str) -> dict[str, str]:
        """
        Persist newly earned badges.

        Already earned badges keep their original timestamp; nothing is
        ever removed.

        Returns:
            The full earned mapping after the update
        """
        earned = merge_earned_badges(self.load_earned_badges(), badge_ids, earned_at)
        self.badges_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.badges_path, "w", encoding="utf-8") as f:
            json.dump(earned, f, indent=2, sort_keys=True)
        return earned


def get_default_plan_path() -> Path:
    """
    Get the default plan file path.

    Returns:
        ~/.run-scheduler/plan.json
    """
    return Path.home() / ".run-scheduler" / "plan.json"
