"""
Command-line client for the uploader service.

Usage:
    python -m app.client upload game_12345_v2.zip other_678_.zip --token <ACCESS_TOKEN>
    python -m app.client upload ./archives/*.zip --login
    python -m app.client history --page 2

`upload` queues the archives and sends them one by one, printing the final
status of each; `history` prints one page of the upload history with the
page-number controls underneath.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

import httpx

from common.config import settings
from .auth import LoginError, obtain_access_token
from .pagination import DOTS, PageToken, PaginationState
from .upload_queue import UploadableItem, UploadQueue

log = logging.getLogger("client")


class UploaderClient:
    """
    Async HTTP client for /api/upload and /api/history.

    Uploads have no timeout: a stuck request blocks its item until the server
    answers or the connection drops.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), transport=transport, timeout=None)

    async def __aenter__(self) -> "UploaderClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def upload_item(self, item: UploadableItem) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        with open(item.path, "rb") as f:
            return await self._http.post(
                "/api/upload",
                files={"file": (item.name, f, "application/zip")},
                headers=headers,
            )

    async def fetch_history(self) -> List[Dict[str, Any]]:
        """Full history, newest first. Any failure or non-array body reads as empty."""
        try:
            r = await self._http.get("/api/history")
        except httpx.HTTPError as e:
            log.error("Failed to load history: %s", e)
            return []
        if r.status_code != 200:
            log.error("Failed to load history: HTTP %s", r.status_code)
            return []
        try:
            data = r.json()
        except ValueError:
            return []
        return data if isinstance(data, list) else []


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------
def format_pages(tokens: Sequence[PageToken], current_page: int) -> str:
    """Page controls as one line, current page in brackets: `1 ... 4 [5] 6 ... 10`."""
    parts = []
    for t in tokens:
        if t == DOTS:
            parts.append(DOTS)
        elif t == current_page:
            parts.append(f"[{t}]")
        else:
            parts.append(str(t))
    return " ".join(parts)


def format_history(records: List[Dict[str, Any]], state: PaginationState) -> str:
    if not records:
        return "No uploads yet."
    lines = [f"{'Name':<40} {'Uploaded':<26} Link"]
    for rec in state.page_slice(records):
        lines.append(f"{str(rec.get('gameName', '')):<40} {str(rec.get('uploadDate', '')):<26} {rec.get('driveLink', '')}")
    lines.append("")
    lines.append(f"Page {state.current_page}/{state.total_pages}: {format_pages(state.window(), state.current_page)}")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------
async def run_upload(client: UploaderClient, paths: Sequence[str]) -> int:
    queue = UploadQueue()
    queue.add(paths)
    if not queue.pending_count:
        print("Nothing to upload: no .zip files given.")
        return 1

    print(f"Uploading {queue.pending_count} file(s)...")
    summary = await queue.submit(client.upload_item)
    for item in queue.items:
        print(f"  {item.name:<50} {item.status.value:<8} {item.message or ''}")
    print(", ".join(f"{k}={v}" for k, v in sorted(summary.items())))

    history = await client.fetch_history()
    state = PaginationState(total_items=len(history), page_size=settings.page_size)
    print()
    print(format_history(history, state))
    return 0 if summary.get("error", 0) == 0 else 2


async def run_history(client: UploaderClient, page: int, page_size: int) -> int:
    history = await client.fetch_history()
    state = PaginationState(total_items=len(history), page_size=page_size)
    if not state.paginate(page) and history:
        log.warning("Page %s does not exist; showing page %s", page, state.current_page)
    print(format_history(history, state))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="zipdrop", description="Upload ZIP archives to Google Drive via the uploader service.")
    p.add_argument("--api-url", default=settings.api_url, help="Base URL of the uploader service")
    sub = p.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upload", help="Upload archives")
    up.add_argument("files", nargs="+", help=".zip archives; the name must contain _<identifier>_")
    up.add_argument("--token", default=os.getenv("GOOGLE_ACCESS_TOKEN"), help="Google OAuth access token")
    up.add_argument("--login", action="store_true", help="Log in with Google in the browser to get a token")

    hist = sub.add_parser("history", help="Show the upload history")
    hist.add_argument("--page", type=int, default=1)
    hist.add_argument("--page-size", type=int, default=settings.page_size)
    return p


async def _main(args: argparse.Namespace) -> int:
    if args.command == "upload":
        token = args.token
        if args.login or not token:
            try:
                token = obtain_access_token(settings.google_client_id, settings.google_client_secret)
            except LoginError as e:
                print(f"Login failed: {e}", file=sys.stderr)
                return 1
        async with UploaderClient(args.api_url, token) as client:
            return await run_upload(client, args.files)

    async with UploaderClient(args.api_url) as client:
        return await run_history(client, args.page, max(1, args.page_size))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
