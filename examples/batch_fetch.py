"""Fetch a handful of endpoints concurrently and report what came back."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from hyperwire import ClientOptions, ErrorKind, HttpClient, Result

BASE_URL = os.getenv("HYPERWIRE_DEMO_URL", "https://httpbin.org")
DEMO_USER = os.getenv("HYPERWIRE_DEMO_USER", "demo")
DEMO_PASSWORD = os.getenv("HYPERWIRE_DEMO_PASSWORD", "demo-pass")


def log_section(title: str) -> None:
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def describe(key: object, result: Result) -> str:
    if result.ok:
        summary = "streamed" if result.data is None else repr(result.data)[:60]
        return f"  {key!s:<10} {result.http_code} {summary}"
    if result.error_kind is ErrorKind.HTTP:
        return f"  {key!s:<10} HTTP {result.http_code}"
    last_line = (result.diagnostic or "").splitlines()[-1:] or [""]
    return f"  {key!s:<10} {result.error_kind.value}: {last_line[0]}"


def main() -> None:
    options = ClientOptions.from_env(timeout=30.0)
    with HttpClient(options) as client:
        log_section("Step 1: Single JSON request")
        result = (
            client.get(f"{BASE_URL}/anything/{{section}}")
            .path_param("section", "users")
            .query_param("page", "1")
            .execute_for_json()
        )
        print(describe("anything", result))

        log_section("Step 2: Authenticated request")
        result = (
            client.get(f"{BASE_URL}/basic-auth/{DEMO_USER}/{DEMO_PASSWORD}")
            .basic_auth(DEMO_USER, DEMO_PASSWORD)
            .execute_for_json()
        )
        print(describe("auth", result))

        log_section("Step 3: Concurrent batch")
        download = Path(tempfile.gettempdir()) / "hyperwire-demo.png"
        jobs = {
            "uuid": client.get(f"{BASE_URL}/uuid").for_json(),
            "delay": client.get(f"{BASE_URL}/delay/1").for_json(),
            "post": client.post(f"{BASE_URL}/post").json_body({"hello": "world"}).for_json(),
            "teapot": client.get(f"{BASE_URL}/status/418"),
            "image": client.get(f"{BASE_URL}/image/png").for_file(download),
            "nowhere": client.get("http://nonexistent.invalid/"),
        }
        for key, outcome in client.execute_many(jobs, concurrency=4, per_host=2).items():
            print(describe(key, outcome))
        print(f"→ Image written to {download}")


if __name__ == "__main__":
    main()
