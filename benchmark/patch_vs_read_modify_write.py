"""
Compare an atomic field patch with a client-side read-modify-write.

Each round stores one generated document, then for a fixed time either calls
`set_field` on one of its keys or reads the whole text, parses it, changes the
key and writes it back. A second phase counts increments lost when several
threads use each approach on the same document.

Usage:
  python -m benchmark.patch_vs_read_modify_write --seconds 2 --sizes 3 50 500
  STORE_BACKEND=redis python -m benchmark.patch_vs_read_modify_write -v
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor

from dotenv import load_dotenv

from persistence.client import JsonPatchClient
from settings import get_settings

logger = logging.getLogger(__name__)

BENCH_KEY = "bench:doc"
NEW_VALUE = "new_value"


def generate_document(n_keys: int, rng: random.Random) -> dict[str, float]:
    return {str(rng.random()): rng.random() for _ in range(n_keys)}


def run_patch(client: JsonPatchClient, key: str, field: str, seconds: float) -> int:
    n = 0
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        client.set_field(key, field, NEW_VALUE).unwrap()
        n += 1
    return n


def run_read_modify_write(client: JsonPatchClient, key: str, field: str, seconds: float) -> int:
    n = 0
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        doc = json.loads(client.get_document(key))
        doc[field] = NEW_VALUE
        client.put_document(key, doc)
        n += 1
    return n


def count_lost_updates(client: JsonPatchClient, key: str, *, workers: int, calls: int, atomic: bool) -> int:
    """Run `workers * calls` increments of "n" and return how many went missing."""
    client.put_document(key, {"n": 0})

    def work(_: int) -> None:
        for _ in range(calls):
            if atomic:
                client.incr_field(key, "n").unwrap()
            else:
                doc = json.loads(client.get_document(key))
                doc["n"] += 1
                client.put_document(key, doc)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(work, range(workers)))
    return workers * calls - json.loads(client.get_document(key))["n"]


def run_size(client: JsonPatchClient, n_keys: int, seconds: float, rng: random.Random) -> dict[str, int]:
    doc = generate_document(n_keys, rng)
    field = rng.choice(list(doc))
    client.put_document(BENCH_KEY, doc)
    patched = run_patch(client, BENCH_KEY, field, seconds)

    client.put_document(BENCH_KEY, doc)
    rewritten = run_read_modify_write(client, BENCH_KEY, field, seconds)
    return {"keys": n_keys, "patch": patched, "read_modify_write": rewritten}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="patch-benchmark",
        description="Atomic field patch vs client-side read-modify-write",
    )
    parser.add_argument("--seconds", type=float, default=5.0, help="Time per approach and size (default: 5)")
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[3, 10, 50, 500, 5000],
        help="Document sizes in top-level keys (default: 3 10 50 500 5000)",
    )
    parser.add_argument("--workers", type=int, default=8, help="Threads for the lost-update phase")
    parser.add_argument("--calls", type=int, default=200, help="Increments per thread in the lost-update phase")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for generated documents")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s: %(message)s")
    load_dotenv("local.env")
    settings = get_settings()
    rng = random.Random(args.seed)

    with JsonPatchClient(settings=settings) as client:
        logger.info("BENCH: store=%s seconds=%s", settings.store_backend, args.seconds)
        for n_keys in args.sizes:
            row = run_size(client, n_keys, args.seconds, rng)
            print(
                f"{row['keys']:>6} keys: patch {row['patch']:>8} ops, "
                f"read-modify-write {row['read_modify_write']:>8} ops in {args.seconds}s"
            )

        for atomic in (True, False):
            lost = count_lost_updates(client, BENCH_KEY, workers=args.workers, calls=args.calls, atomic=atomic)
            label = "patch" if atomic else "read-modify-write"
            print(f"lost updates ({label}, {args.workers} threads x {args.calls}): {lost}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
