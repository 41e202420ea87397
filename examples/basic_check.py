"""Basic fee check example.

Runs `feecheck check` for a few mints and prints a one-line verdict each.
"""

import json
import subprocess
import sys


def main(mints):
    result = subprocess.run(
        ["feecheck", "check", *mints, "--format", "json"],
        capture_output=True,
        text=True,
    )

    if not result.stdout:
        print(f"Error ({result.returncode}): {result.stderr}")
        return

    data = json.loads(result.stdout)
    entries = data["results"] if "results" in data else [data]

    for entry in entries:
        mint = entry["token_mint"]
        if "error" in entry:
            print(f"{mint[:8]}...  ERROR  {entry['error']['message']}")
            continue
        a = entry["analysis"]
        print(f"{mint[:8]}...  {a['verdict']:<12} {a['pattern']:<22} {a['why']}")


if __name__ == "__main__":
    main(sys.argv[1:] or ["So11111111111111111111111111111111111111112"])
