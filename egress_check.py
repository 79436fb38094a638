import argparse
import sys

import requests

ENDPOINTS = {
    "system": "/api/system",
    "external-ip": "/api/external-ip",
    "ipinfo": "/api/test-ipinfo",
    "httpbin": "/api/test-httpbin",
}

# ------------------------- CHECK -------------------------
def check_endpoint(base_url, path, timeout=20):
    """Call one endpoint of the deployed demo and print what came back. Returns True on HTTP 200."""
    url = base_url.rstrip("/") + path
    print("->", url)
    try:
        r = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        print("Failed to call service URL:", e)
        return False

    print("Service returned status", r.status_code)
    try:
        j = r.json()
    except ValueError:
        print("Response body (first 500 chars):", r.text[:500])
    else:
        if isinstance(j, dict):
            print("Response JSON keys:", list(j.keys()))
            if "currentTime" in j:
                print("Server time:", j["currentTime"])
        else:
            print("Response JSON:", j)
    return r.status_code == 200


def run_checks(base_url, names, timeout=20):
    """Check each named endpoint in turn; returns the number of failures."""
    failures = 0
    for name in names:
        print(f"[{name}]")
        if not check_endpoint(base_url, ENDPOINTS[name], timeout=timeout):
            failures += 1
    return failures

# ------------------------- CLI -------------------------
def main(argv=None):
    parser = argparse.ArgumentParser(description="Smoke check for a deployed egress demo instance")
    parser.add_argument("base_url", help="Base URL of the service, e.g. http://demo.tenant-a.svc:8080")
    parser.add_argument("--endpoint", action="append", choices=sorted(ENDPOINTS),
                        help="Endpoint to check (repeatable, default: all)")
    parser.add_argument("--timeout", type=float, default=20, help="Per-request timeout in seconds")
    args = parser.parse_args(argv)

    names = args.endpoint or list(ENDPOINTS)
    failures = run_checks(args.base_url, names, timeout=args.timeout)
    if failures:
        print(f"{failures} of {len(names)} checks failed.")
        return 1
    print("All checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
