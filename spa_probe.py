"""
Smoke check for a running deployment of web_server.py.

Usage:
    python spa_probe.py [--base URL] [--insecure] [asset paths...]

Checks that / serves the entry document, that a client-side route gets the
same document, and that every asset path given is served as itself.
"""
import argparse
import sys
from collections import namedtuple

import requests
import urllib3

from web_server import public_url

CLIENT_ROUTE = "/__probe__/client/route"
TIMEOUT = 10

ProbeResult = namedtuple("ProbeResult", ["path", "ok", "detail"])


def fetch(base_url, path, verify=True):
    return requests.get(base_url.rstrip("/") + path, verify=verify, timeout=TIMEOUT)


def check_deployment(base_url, asset_paths=(), verify=True):
    results = []

    try:
        index = fetch(base_url, "/", verify)
    except requests.RequestException as e:
        return [ProbeResult("/", False, f"request failed: {e}")]

    content_type = index.headers.get("Content-Type", "")
    if index.status_code == 200 and content_type.startswith("text/html"):
        results.append(ProbeResult("/", True, f"{len(index.content)} bytes"))
    else:
        results.append(ProbeResult("/", False, f"status {index.status_code}, {content_type or 'no content type'}"))

    paths = [(CLIENT_ROUTE, True)] + [(p, False) for p in asset_paths]
    for path, expect_index in paths:
        try:
            r = fetch(base_url, path, verify)
        except requests.RequestException as e:
            results.append(ProbeResult(path, False, f"request failed: {e}"))
            continue

        if r.status_code != 200:
            results.append(ProbeResult(path, False, f"status {r.status_code}"))
        elif expect_index and r.content != index.content:
            results.append(ProbeResult(path, False, "route did not fall back to the entry document"))
        elif not expect_index and r.content == index.content:
            results.append(ProbeResult(path, False, "asset missing, got the entry document"))
        else:
            results.append(ProbeResult(path, True, f"{len(r.content)} bytes, {r.headers.get('Content-Type')}"))

    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Check a running SPA deployment.")
    parser.add_argument("assets", nargs="*", help="asset paths expected to exist, e.g. /main.dart.js")
    parser.add_argument("--base", default=public_url(), help="base URL of the deployment")
    parser.add_argument("--insecure", action="store_true", help="skip certificate verification")
    args = parser.parse_args(argv)

    if args.insecure:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    print(f"🌐 Probing {args.base} ...")
    results = check_deployment(args.base, args.assets, verify=not args.insecure)
    for res in results:
        mark = "✅" if res.ok else "❌"
        print(f"{mark} {res.path}: {res.detail}")

    failed = sum(1 for res in results if not res.ok)
    if failed:
        print(f"\n{failed} check(s) failed")
        return 1
    print("\nAll checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
