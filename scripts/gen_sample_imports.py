#!/usr/bin/env python3
"""Sample import generator.

Writes one import file per entity type (managers, projects, subcontractors,
workers) into an output directory, using the canonical header labels of the
onboarding schema so the files import without extra synonyms. Worker rows
reference the generated subcontractors and projects reference the generated
managers, so a full CLI run over the output completes.

--duplicate-rate copies that share of rows (email / name collisions with a
changed letter case) to exercise duplicate detection.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

from crew_onboarding.models.entities import EntityType
from crew_onboarding.schema.registry import get_schema

FIRST_NAMES = ["Jane", "John", "Maria", "Ahmed", "Li", "Olga", "Sam", "Priya", "Diego", "Ana"]
LAST_NAMES = ["Doe", "Smith", "Garcia", "Khan", "Wei", "Ivanova", "Lee", "Patel", "Lopez", "Silva"]
TRADES = ["Electric", "Plumbing", "Concrete", "Framing", "Roofing", "Drywall", "HVAC", "Glazing"]
STREETS = ["Main St", "Oak Ave", "Harbor Rd", "Hill St", "Market St", "Lake Dr"]


def _people(rng: np.random.Generator, rows: int, domain: str) -> list[tuple[str, str, str]]:
    out = []
    for i in range(rows):
        first = str(rng.choice(FIRST_NAMES))
        last = str(rng.choice(LAST_NAMES))
        out.append((first, last, f"{first}.{last}.{i}@{domain}".lower()))
    return out


def generate_frames(rows: int, seed: int = 42) -> dict[EntityType, pd.DataFrame]:
    """Build one DataFrame per entity type, columns keyed by field name."""
    rng = np.random.default_rng(seed)

    managers = pd.DataFrame(
        [{"name": f"{first} {last}", "email": e} for first, last, e in _people(rng, max(1, rows // 10), "pm.example.com")]
    )
    projects = pd.DataFrame(
        {
            "name": [f"Project {i + 1:03d}" for i in range(rows)],
            "location": [f"{rng.integers(1, 999)} {rng.choice(STREETS)}" for _ in range(rows)],
            "project_manager": rng.choice(managers["name"].to_numpy(), rows),
            "cost": np.round(rng.uniform(10_000, 5_000_000, rows), 2),
        }
    )
    subcontractors = pd.DataFrame(
        {
            "name": [f"{TRADES[i % len(TRADES)]} Co {i + 1}" for i in range(max(1, rows // 5))],
        }
    )
    count = len(subcontractors)
    subcontractors["contract_amount"] = np.round(rng.uniform(5_000, 900_000, count), 2)
    subcontractors["foreman"] = [f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}" for _ in range(count)]
    subcontractors["project_refs"] = ["; ".join(rng.choice(projects["name"].to_numpy(), 2)) for _ in range(count)]

    workers = pd.DataFrame(
        [
            {"first_name": first, "last_name": last, "email": e}
            for first, last, e in _people(rng, rows, "crew.example.com")
        ]
    )
    workers["rate"] = np.round(rng.uniform(18, 95, rows), 2)
    workers["subcontractor_name"] = rng.choice(subcontractors["name"].to_numpy(), rows)

    return {
        EntityType.MANAGERS: managers,
        EntityType.PROJECTS: projects,
        EntityType.SUBCONTRACTORS: subcontractors,
        EntityType.WORKERS: workers,
    }


def inject_duplicates(df: pd.DataFrame, key_fields: tuple[str, ...], rate: float, seed: int = 42) -> pd.DataFrame:
    """Append copies of a share of rows whose key differs only in letter case."""
    if rate <= 0 or df.empty:
        return df
    rng = np.random.default_rng(seed)
    n = max(1, int(len(df) * rate))
    picked = df.iloc[rng.choice(len(df), size=n, replace=False)].copy()
    for field in key_fields:
        picked[field] = picked[field].astype(str).str.upper()
    return pd.concat([df, picked], ignore_index=True)


def write_frames(frames: dict[EntityType, pd.DataFrame], output_dir: Path, fmt: str) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for entity_type, df in frames.items():
        schema = get_schema(entity_type)
        labelled = df.rename(columns={f.name: f.label for f in schema.fields})
        path = output_dir / f"{entity_type.value}.{fmt}"
        if fmt == "xlsx":
            labelled.to_excel(path, index=False, sheet_name=schema.plural.title()[:31], engine="openpyxl")
        else:
            labelled.to_csv(path, index=False)
        written.append(path)
    return written


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate sample onboarding import files")
    parser.add_argument("--output", type=Path, default=Path("samples"), help="Output directory (default: samples)")
    parser.add_argument("--rows", type=int, default=50, help="Projects/workers per file (default: 50)")
    parser.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="File format (default: csv)")
    parser.add_argument("--duplicate-rate", type=float, default=0.0, help="Share of rows duplicated (default: 0)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.duplicate_rate < 1:
        print("Error: --duplicate-rate must be in [0, 1)", file=sys.stderr)
        return 1

    frames = generate_frames(args.rows, args.seed)
    if args.duplicate_rate:
        frames = {
            t: inject_duplicates(df, get_schema(t).key_fields, args.duplicate_rate, args.seed)
            for t, df in frames.items()
        }
    for path in write_frames(frames, args.output, args.format):
        print(f"wrote {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
