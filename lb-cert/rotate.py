#!/usr/bin/env python3
"""One-shot OCI load balancer certificate rotation.

Reads the certbot archive {prefix}-{domain}.tar.gz from Object Storage and
installs its live certificate on the load balancer if it is not there yet,
then points every TLS listener at it.

Usage:
    python rotate.py [--dry-run] [--domain example.com]

Environment variables (see config.Settings for the optional ones):
    LBCERT_FN_LB_OCID       : required
    LBCERT_FN_OS_NS         : required
    LBCERT_FN_OS_BN         : required
    LBCERT_FN_ARCHIVE_PREFIX: required
    LBCERT_FN_DOMAIN        : required unless --domain is given

Exit codes: 0 installed, skipped or dry run; 2 archive not published; 1 error.
"""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from config import Settings, setup_logging
from errors import ArchiveNotFound, LbCertError, PartialReconciliationError
from orchestrator import build

log = logging.getLogger("rotate")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="OCI load balancer certificate rotation")
    parser.add_argument("--dry-run", action="store_true",
                        help="Resolve and plan only; print the listener updates without sending them")
    parser.add_argument("--domain", help="Override LBCERT_FN_DOMAIN")
    args = parser.parse_args(argv)

    overrides = {"domain": args.domain} if args.domain else {}
    try:
        settings = Settings.load(**overrides)
    except ValidationError as e:
        print(f"ERROR: invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_logging(settings)

    try:
        result = build(settings).rotate(dry_run=args.dry_run)
    except ArchiveNotFound as e:
        log.warning("%s", e)
        return 2
    except PartialReconciliationError as e:
        log.error("%s", e)
        print(json.dumps(e.as_dict(), indent=2))
        return 1
    except (LbCertError, ValueError) as e:
        log.error("%s", e)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
