#!/usr/bin/env python3
"""
Build the acronym table consumed by swimc from:
- the built-in defaults (swimc.DEFAULT_ACRONYMS)
- data/acronyms_seeds.json (optional, team-wide additions)
- data/acronyms_local.json (optional, local overrides)
- any extra JSON files given on the command line (applied last)

Writes data/acronyms.json
"""
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import swimc

SEEDS = ROOT / "data" / "acronyms_seeds.json"
LOCAL = ROOT / "data" / "acronyms_local.json"
OUTPUT = ROOT / "data" / "acronyms.json"

def canon_name(name: str) -> str:
    return " ".join(str(name).split())

def merge_tokens(dst: list, src: list) -> list:
    seen = {t.lower() for t in dst}
    for tok in src:
        tok = tok.strip()
        if tok and tok.lower() not in seen:
            dst.append(tok); seen.add(tok.lower())
    return dst

def merge_table(dst: dict, src: dict):
    for kind in ("strokes", "styles"):
        entries = dst.setdefault(kind, {})
        for name, tokens in (src.get(kind) or {}).items():
            cid = canon_name(name)
            # an entry set to null drops the category
            if tokens is None:
                entries.pop(cid, None); continue
            merge_tokens(entries.setdefault(cid, []), tokens)
    return dst

def load_sources(extra=()):
    table = merge_table({}, swimc.DEFAULT_ACRONYMS)
    for fp in [SEEDS, LOCAL, *[Path(p) for p in extra]]:
        if not fp.exists():
            continue
        data = json.loads(fp.read_text(encoding="utf-8"))
        errors = swimc.validate_acronyms(_without_nulls(data))
        if errors:
            raise swimc.AcronymConfigError(f"{fp}: " + "; ".join(errors))
        merge_table(table, data)
    return table

def _without_nulls(data):
    if not isinstance(data, dict):
        return data
    out = dict(data)
    for kind in ("strokes", "styles"):
        if isinstance(out.get(kind), dict):
            out[kind] = {k: v for k, v in out[kind].items() if v is not None}
        else:
            out.setdefault(kind, {})
    return out

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        table = load_sources(argv)
    except (swimc.AcronymConfigError, json.JSONDecodeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    OUTPUT.parent.mkdir(parents=True, exist_ok=True)
    OUTPUT.write_text(json.dumps(table, indent=2, ensure_ascii=False) + "\n")
    print(f"Wrote {OUTPUT}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
