#!/usr/bin/env python3
"""Synthetic client upload generator for performance and manual testing.

Writes a client CSV in the download-template format (mandatory headers
marked with '*') plus a YAML seed file with the partner employees and firms
the rows refer to, for use with `python -m firmdesk.cli --seed`.

A configurable share of rows is deliberately defective: repeated PANs
(duplicates), blank mobile numbers and malformed emails (fixable), and blank
names (ignored).
"""
from __future__ import annotations

import argparse
import string
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import yaml

from firmdesk.csvio.layouts import CLIENTS, get_layout
from firmdesk.csvio.templates import template_headers

PARTNERS = ["Dojo Davis", "Meera Nair", "Arjun Menon"]
FIRMS = [("Davis, Martin & Varghese", "Kerala"), ("Nair Associates", "Karnataka")]
CATEGORIES = ["Corporate", "Individual", "LLP", "Trust"]
STATES = ["Kerala", "Karnataka", "Maharashtra", "Tamil Nadu"]


def _pan(rng: np.random.Generator) -> str:
    letters = rng.choice(list(string.ascii_uppercase), 6)
    digits = rng.integers(0, 10, 4)
    return "".join(letters[:5]) + "".join(str(d) for d in digits) + letters[5]


def generate_client_rows(rows: int, seed: int = 42, defect_rate: float = 0.05) -> pd.DataFrame:
    """Client rows keyed by plain (unmarked) CSV headers."""
    rng = np.random.default_rng(seed)
    data: dict[str, list[Any]] = {c: [""] * rows for c in get_layout(CLIENTS).columns}
    pans: list[str] = []
    for i in range(rows):
        pan = _pan(rng)
        pans.append(pan)
        firm_name, _ = FIRMS[i % len(FIRMS)]
        data["Name"][i] = f"Client {i + 1:06d}"
        data["Mail ID"][i] = f"client{i + 1}@example.com"
        data["Mobile Number"][i] = str(9_000_000_000 + i)
        data["Category"][i] = str(rng.choice(CATEGORIES))
        data["Partner"][i] = PARTNERS[i % len(PARTNERS)]
        data["Firm Name"][i] = firm_name
        data["PAN"][i] = pan
        data["State"][i] = str(rng.choice(STATES))
        data["Country"][i] = "India"
        data["Pincode"][i] = str(rng.integers(100000, 999999))

    defects = rng.random(rows) < defect_rate
    kinds = rng.integers(0, 4, rows)
    for i in np.flatnonzero(defects):
        kind = kinds[i]
        if kind == 0 and i > 0:
            data["PAN"][i] = pans[int(rng.integers(0, i))]
        elif kind == 1:
            data["Mobile Number"][i] = ""
        elif kind == 2:
            data["Mail ID"][i] = "not-an-email"
        else:
            data["Name"][i] = ""
    return pd.DataFrame(data)


def seed_documents() -> dict[str, list[dict[str, Any]]]:
    employees = [
        {"id": f"emp{i + 1}", "name": name, "email": f"partner{i + 1}@example.com", "role": ["Partner"]}
        for i, name in enumerate(PARTNERS)
    ]
    firms = [
        {"id": f"firm{i + 1}", "name": name, "state": state, "gstn": f"32ABCDE{i:04d}F1Z5"}
        for i, (name, state) in enumerate(FIRMS)
    ]
    return {"employees": employees, "firms": firms}


def write_dataset(output: Path, rows: int, seed: int = 42, defect_rate: float = 0.05) -> Path:
    """Write the CSV at `output` and the seed YAML beside it; returns the seed path."""
    output.parent.mkdir(parents=True, exist_ok=True)
    frame = generate_client_rows(rows, seed, defect_rate)
    frame.columns = template_headers(get_layout(CLIENTS))
    frame.to_csv(output, index=False, lineterminator="\n")
    seed_path = output.with_suffix(".seed.yml")
    seed_path.write_text(yaml.safe_dump(seed_documents(), sort_keys=False), encoding="utf-8")
    return seed_path


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic client upload CSV")
    parser.add_argument("output", type=Path, help="Output CSV path")
    parser.add_argument("--rows", type=int, default=10_000, help="Number of rows (default: 10,000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--defect-rate", type=float, default=0.05, help="Share of defective rows (default: 0.05)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.defect_rate <= 1:
        print("Error: --defect-rate must be between 0 and 1", file=sys.stderr)
        return 1

    seed_path = write_dataset(args.output, args.rows, args.seed, args.defect_rate)
    print(f"Created CSV: {args.output} ({args.rows:,} rows)")
    print(f"Created seed: {seed_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
