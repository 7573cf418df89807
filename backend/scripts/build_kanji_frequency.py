from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from yomikata.core.config import DEFAULT_FREQUENCY_TABLE_PATH
from yomikata.services.frequency import read_frequency_csv, write_frequency_table


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert a kanji frequency CSV into the ordered kanji table")
    parser.add_argument("csv_path", type=Path, help="CSV with a header row, kanji and frequency rank per row")
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_FREQUENCY_TABLE_PATH,
        help="Where to write the table (one block of kanji per line, most frequent first)",
    )
    parser.add_argument("--kanji-column", type=int, default=0, help="Zero-based column holding the kanji")
    parser.add_argument("--rank-column", type=int, default=2, help="Zero-based column holding the rank")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    if not args.csv_path.exists():
        raise SystemExit(f"csv not found: {args.csv_path}")

    table = read_frequency_csv(args.csv_path, kanji_column=args.kanji_column, rank_column=args.rank_column)
    if not len(table):
        raise SystemExit(f"no kanji with a numeric rank found in {args.csv_path}")
    write_frequency_table(table, args.output)

    print(
        json.dumps(
            {
                "csv_path": str(args.csv_path),
                "output": str(args.output),
                "kanji": len(table),
            },
            ensure_ascii=True,
        )
    )
