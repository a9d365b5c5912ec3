"""Export JSON schemas for the Job document and Day."""

import json
from pathlib import Path

from backend.itinerary.models import Day, Job


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    # Export Job schema (by alias: the stored/served field names)
    job_schema = Job.model_json_schema(by_alias=True)
    job_path = schemas_dir / "Job.schema.json"
    with open(job_path, "w") as f:
        json.dump(job_schema, f, indent=2)
    print(f"Exported Job schema to {job_path}")

    # Export Day schema
    day_schema = Day.model_json_schema()
    day_path = schemas_dir / "Day.schema.json"
    with open(day_path, "w") as f:
        json.dump(day_schema, f, indent=2)
    print(f"Exported Day schema to {day_path}")


if __name__ == "__main__":
    main()
