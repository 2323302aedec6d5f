#!/usr/bin/env python3
"""
Demo script for the template cache.

Exercises the content-addressed store directly: de-duplication, moves of
uploaded files, concurrent writes, and removal. Needs no rendering engine.
"""

import os
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from template_cache.entities import Ok
from template_cache.repositories import FileCacheStore


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def demo_basic_operations(store: FileCacheStore) -> None:
    """Demonstrate write, find, read and remove."""
    print_section("Basic Cache Operations")

    result = store.write("aGVsbG8=", "a.txt", "base64")
    if not isinstance(result, Ok):
        print(f"  ✗ Write failed: {result.kind.value}: {result.detail}")
        return

    identifier = result.value.identifier
    print(f"\n📝 Stored a.txt as {identifier}")

    entry = store.find(identifier).value
    print(f"  Name: {entry.display_name}  Extension: {entry.extension}  Size: {entry.size}")
    print(f"  Content: {store.read(identifier).value!r}")

    again = store.write(b"hello", "copy-of-a.txt")
    print(f"\n🔁 Writing the same bytes again -> created={again.value.created}, same id: {again.value.identifier == identifier}")

    store.remove(identifier)
    missing = store.find(identifier)
    print(f"\n🗑  Removed. find() now returns {missing.kind.value}")


def demo_move(store: FileCacheStore) -> None:
    """Demonstrate adopting an uploaded file."""
    print_section("Adopting Uploads")

    upload = store.temp_path()
    upload.write_bytes(os.urandom(1024 * 1024))
    result = store.move(upload, "report.docx")
    print(f"\n📦 Moved 1MB upload into cache as {result.value.identifier[:16]}...")
    print(f"  Upload file still exists: {upload.exists()}")


def demo_concurrent_writes(store: FileCacheStore) -> None:
    """Demonstrate concurrent identical writes."""
    print_section("Concurrent Identical Writes")

    content = os.urandom(4 * 1024 * 1024)
    start = time.time()
    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda i: store.write(content, f"copy{i}.bin"), range(64)))
    duration = (time.time() - start) * 1000

    identifiers = {r.value.identifier for r in results if isinstance(r, Ok)}
    created = sum(1 for r in results if isinstance(r, Ok) and r.value.created)
    print(f"\n⚡ 64 writes in {duration:.1f}ms")
    print(f"  Distinct identifiers: {len(identifiers)}")
    print(f"  Physical writes: {created}")


def main() -> None:
    with tempfile.TemporaryDirectory() as root:
        store = FileCacheStore(Path(root) / "cache")
        demo_basic_operations(store)
        demo_move(store)
        demo_concurrent_writes(store)

        print_section("Stats")
        for key, value in store.get_stats().items():
            print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
