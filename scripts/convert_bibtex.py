"""Convert a BibTeX/BibLaTeX file.

Prints the normalized records as CSL-JSON, re-exports them as BibLaTeX, or
renders them as a plain-text bibliography. Deterministic and offline.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Convert a BibTeX/BibLaTeX file")
    parser.add_argument("input", help="Path to a .bib file")
    parser.add_argument(
        "--format",
        choices=["json", "biblatex", "text"],
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument("--output", help="Write to this file instead of stdout")
    parser.add_argument("--style", default=None, help="Citation style for text output (default: configured style)")
    parser.add_argument("--locale", default=None, help="Locale for text output (default: configured locale)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 when any entry could not be converted",
    )

    args = parser.parse_args(argv)

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    from citekit.biblatex import export_records, import_records
    from citekit.config import BIBLIOGRAPHY
    from citekit.records.repository import ResolvedRecord
    from citekit.render import CitationRenderer, Scope

    input_path = Path(args.input)
    try:
        text = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Could not read {input_path}: {type(e).__name__}", file=sys.stderr)
        return 1

    records, errors = import_records(text)

    if args.format == "json":
        output = json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)
    elif args.format == "biblatex":
        output = export_records(records)
    else:
        renderer = CitationRenderer(
            [ResolvedRecord(record=r, target=str(input_path)) for r in records],
            args.style or BIBLIOGRAPHY.style,
            args.locale or BIBLIOGRAPHY.locale,
            errors=errors,
        )
        output = renderer.render_bibliography(Scope.CITED)

    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
    else:
        print(output)

    for error in errors:
        print(f"error: {error}", file=sys.stderr)
    print(f"records: {len(records)}", file=sys.stderr)
    print(f"errors: {len(errors)}", file=sys.stderr)

    if args.strict and errors:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
