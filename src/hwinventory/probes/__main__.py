"""
Remote probe entry point.

Run on the queried host by the SSH channel:

    python3 -m hwinventory.probes <kind> [--raw]

Prints the collected records as a JSON array on stdout. A probe failure is
reported on stderr with exit status 3 (PROBE_FAILURE_STATUS), so it is
not confused with an interpreter failure such as a missing package.
"""

import argparse
import json
import sys

from ..errors import ProbeError
from ..formats import json_default
from . import PROBE_FAILURE_STATUS, PROBES, get_probe


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="python3 -m hwinventory.probes",
        description="Collect inventory facts for this host and print them as JSON"
    )
    parser.add_argument("kind", choices=sorted(PROBES))
    parser.add_argument("--raw", action="store_true", help="Print unprocessed platform facts")
    args = parser.parse_args(argv)

    try:
        records = get_probe(args.kind).collect(raw=args.raw)
    except ProbeError as e:
        print(str(e), file=sys.stderr)
        return PROBE_FAILURE_STATUS

    json.dump(records, sys.stdout, default=json_default)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
