"""
Register a batch of test accounts against the API and write a CSV for Locust.

Every account gets its audience profile on signup. With ``--venues`` the
first N accounts also create and activate a public venue profile so artist
users have somewhere to send booking requests.

Usage:

  python load/register_test_users.py \
    --host http://localhost:8000 \
    --count 50 \
    --venues 10 \
    --outfile load/test_users.csv

Then export STAGELINK_TEST_USERS from the printed line before running Locust.
"""

from __future__ import annotations

import argparse
import os
from typing import List

import requests


def make_user_payload(email: str, password: str, idx: int) -> dict:
    return {
        "email": email,
        "password": password,
        "first_name": f"Test{idx}",
        "last_name": "User",
    }


def _login(client: requests.Session, base: str, email: str, password: str) -> str:
    r = client.post(f"{base}/auth/login", data={"username": email, "password": password}, timeout=15)
    r.raise_for_status()
    return r.json()["access_token"]


def _create_venue(client: requests.Session, base: str, token: str, idx: int) -> None:
    headers = {"Authorization": f"Bearer {token}"}
    r = client.post(
        f"{base}/api/v1/profiles",
        json={"type": "venue", "name": f"Load Venue {idx}", "location": "Testville"},
        headers=headers,
        timeout=15,
    )
    if r.status_code != 201:
        print(f"ERROR {r.status_code} creating venue {idx}: {r.text[:200]}")
        return
    client.post(f"{base}/api/v1/profiles/{r.json()['id']}/activate", headers=headers, timeout=15)


def register_users(host: str, emails: List[str], password: str, venues: int) -> None:
    created = 0
    exists = 0
    failed: List[str] = []
    base = host.rstrip("/")
    with requests.Session() as client:
        for i, email in enumerate(emails, 1):
            try:
                r = client.post(
                    f"{base}/auth/register", json=make_user_payload(email, password, i), timeout=15
                )
            except requests.RequestException as exc:
                failed.append(email)
                print(f"ERROR registering {email}: {exc}")
                continue
            if r.status_code == 201:
                created += 1
                if i <= venues:
                    _create_venue(client, base, _login(client, base, email, password), i)
                continue
            if r.status_code == 422 and "already" in r.text:
                exists += 1
                continue
            failed.append(email)
            print(f"ERROR {r.status_code} registering {email}: {r.text[:200]}")
    print(f"Done. created={created} exists={exists} failed={len(failed)}")
    if failed:
        print("Failed emails:", ", ".join(failed))


def write_csv(path: str, emails: List[str], password: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for e in emails:
            f.write(f"{e}:{password}\n")
    print(f"Wrote {len(emails)} creds to {path}")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--host", required=True, help="API host, e.g. http://localhost:8000")
    ap.add_argument("--prefix", default="loadtest", help="Local part prefix, e.g. 'loadtest' -> loadtest1@...")
    ap.add_argument("--domain", default="stagelink.test", help="Email domain")
    ap.add_argument("--start", type=int, default=1, help="Starting index (inclusive)")
    ap.add_argument("--count", type=int, default=50, help="Number of users to create")
    ap.add_argument("--venues", type=int, default=0, help="How many of the new users also get a venue profile")
    ap.add_argument("--password", default="11111111", help="Password for all users")
    ap.add_argument("--outfile", default="load/test_users.csv", help="Output CSV (email:password per line)")
    args = ap.parse_args()

    emails = [f"{args.prefix}{i}@{args.domain}" for i in range(args.start, args.start + args.count)]

    print(f"Registering {len(emails)} users at {args.host} ...")
    register_users(args.host, emails, args.password, args.venues)
    write_csv(args.outfile, emails, args.password)
    print("You can set STAGELINK_TEST_USERS by running:")
    print(f"  export STAGELINK_TEST_USERS=\"{','.join(e + ':' + args.password for e in emails)}\"")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
