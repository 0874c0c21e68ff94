import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from matchengine.config import ConfigurationError, load_matching_config
from matchengine.services.pipeline import compare_runs, run_matching_from_payloads


def _load_json(path: str):
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the matching engine over a response snapshot (dry run, nothing is persisted)")
    parser.add_argument("snapshot", help="JSON file holding a list of user payloads (or {\"users\": [...]})")
    parser.add_argument("--config", help="JSON file with config overrides applied on top of the environment config")
    parser.add_argument("--compare-config", help="JSON file with overrides for a second run to compare against")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--include-pairs", action="store_true", help="Include every scored pair in the report")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    snapshot = _load_json(args.snapshot)
    payloads = snapshot.get("users", []) if isinstance(snapshot, dict) else snapshot

    try:
        cfg = load_matching_config()
        if args.config:
            cfg = cfg.with_overrides(_load_json(args.config))
        if args.compare_config:
            report = compare_runs(payloads, cfg, cfg.with_overrides(_load_json(args.compare_config)))
        else:
            report = run_matching_from_payloads(payloads, cfg, workers=args.workers).to_dict(include_pairs=args.include_pairs)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        raise SystemExit(2)

    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
