"""Write the wire contract JSON schema to stdout or a file.

    python scripts/export_schema.py > contracts.schema.json
    python scripts/export_schema.py --out docs/contracts.schema.json
"""

from __future__ import annotations

import argparse
from pathlib import Path

from agent_bridge_contracts.schema_export import export_json_schema, to_json


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--out", type=Path, default=None)
    args = parser.parse_args()

    text = to_json(export_json_schema())
    if args.out is None:
        print(text)
        return
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(text + "\n", encoding="utf-8")
    print(f"wrote {args.out}")


if __name__ == "__main__":
    main()
