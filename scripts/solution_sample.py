"""Console sample: import a solution package, then optionally delete it.

Prereqs (env vars):
- DATAVERSE_URL                 e.g. https://yourorg.crm.dynamics.com
- DATAVERSE_ACCESS_TOKEN        fixed bearer token (optional)
  Without it, DefaultAzureCredential signs in (az login, or AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET).

Optional:
- SAMPLE_LOG_LEVEL              [default: WARNING]

Run:
  python scripts/solution_sample.py --solution MySolution --file MySolution_1_0_0_0.zip
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

# Allow running as: `python scripts/solution_sample.py`
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

load_dotenv(override=False)

from src.samples.integrations.org_service import DataverseClient  # noqa: E402
from src.samples.use_cases.sample_helpers import (  # noqa: E402
    check_version,
    delete_solution,
    handle_exception,
    import_solution,
)

DEFAULT_MIN_VERSION = "9.0.0.0"


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import (and optionally delete) a solution package.")
    p.add_argument("--solution", required=True, help="Solution unique name")
    p.add_argument("--file", required=True, help="Path to the solution .zip package")
    p.add_argument("--min-version", default=DEFAULT_MIN_VERSION, help="Minimum server version")
    p.add_argument(
        "--delete",
        choices=["ask", "yes", "no"],
        default="ask",
        help="Delete the solution afterwards (ask prompts on the console)",
    )
    return p.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    service = DataverseClient.from_env()

    if not check_version(service, args.min_version):
        return 0

    if import_solution(service, args.solution, args.file):
        print(f"Imported the {args.solution} solution.")

    confirm = None if args.delete == "ask" else args.delete == "yes"
    delete_solution(service, args.solution, confirm=confirm)
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=getattr(logging, os.environ.get("SAMPLE_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    )
    args = _parse_args(argv)
    try:
        return run(args)
    except Exception as e:
        handle_exception(e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
