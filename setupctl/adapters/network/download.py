"""
Download adapter — release files, archives and GitHub release tags.

Step kinds:
    download         fetch a URL to a destination path
    archive          fetch + extract (tar.gz / zip) into the work dir,
                     then copy members into place
    github_release   resolve the latest release tag of a GitHub repo
                     into a fact (``{version}`` by default)

Files are always fetched into the run's work dir first; only the
final copy into place runs with root privileges.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import posixpath
import tarfile
import urllib.error
import urllib.request
import zipfile
from pathlib import Path
from typing import Any

from setupctl import __version__
from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_USER_AGENT = f"setupctl/{__version__}"
_CHUNK = 64 * 1024


class DownloadError(Exception):
    """A fetch, checksum or extraction failed."""


# ── Helpers ─────────────────────────────────────────────────────


def fetch(url: str, dest: Path, timeout: int = 600) -> int:
    """Stream a URL to a local file. Returns the number of bytes written."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    written = 0
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as f:
            while True:
                chunk = resp.read(_CHUNK)
                if not chunk:
                    break
                f.write(chunk)
                written += len(chunk)
    except (urllib.error.URLError, OSError) as e:
        raise DownloadError(f"Download failed for {url}: {e}") from e
    logger.debug("Fetched %s (%d bytes)", url, written)
    return written


def sha256_of(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def latest_release_tag(repo: str, timeout: int = 15) -> str:
    """Tag name of the latest GitHub release of ``owner/repo``."""
    api_url = f"https://api.github.com/repos/{repo}/releases/latest"
    req = urllib.request.Request(
        api_url,
        headers={
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise DownloadError(f"Failed to fetch latest release of {repo}: {e}") from e

    tag = data.get("tag_name", "")
    if not tag:
        raise DownloadError(f"No release tag found for {repo}")
    return tag


def archive_format(url: str, declared: str | None = None) -> str:
    """Archive format from the declared value or the URL suffix."""
    if declared:
        return declared
    lowered = url.lower()
    if lowered.endswith((".tar.gz", ".tgz")):
        return "tar.gz"
    if lowered.endswith(".zip"):
        return "zip"
    raise DownloadError(f"Cannot tell archive format of {url}")


def extract(archive: Path, fmt: str, dest: Path) -> None:
    """Extract an archive, keeping the executable bits of its members."""
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if fmt == "tar.gz":
            with tarfile.open(archive, "r:gz") as tf:
                tf.extractall(dest, filter="data")
            return
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                extracted = zf.extract(info, dest)
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(extracted, mode)
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise DownloadError(f"Extract failed for {archive.name}: {e}") from e


def install_commands(src: str, dest: str, dest_is_dir: bool, src_is_dir: bool) -> list[list[str]]:
    """Commands that put an extracted member in place.

    - dest missing: src becomes dest
    - both directories: src's children are merged into dest
    - dest an existing directory: src is placed inside it
    """
    parent = posixpath.dirname(dest.rstrip("/")) or "/"
    if dest_is_dir and src_is_dir:
        return [["cp", "-a", f"{src.rstrip('/')}/.", dest]]
    if dest_is_dir:
        return [["cp", "-a", src, dest.rstrip("/") + "/"]]
    return [["mkdir", "-p", parent], ["cp", "-a", src, dest]]


def _url_basename(url: str) -> str:
    return posixpath.basename(url.split("?", 1)[0]) or "download"


# ── Adapter ─────────────────────────────────────────────────────


class DownloadAdapter(Adapter):
    """Fetch files and release archives over HTTPS (urllib)."""

    @property
    def name(self) -> str:
        return "download"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        kind = context.action.kind
        params = context.params
        if kind == "github_release":
            if "/" not in params.get("repo", ""):
                return False, "Param 'repo' must be 'owner/name'"
            return True, ""
        if kind not in {"download", "archive"}:
            return False, f"Unsupported step kind for download adapter: {kind}"
        if not params.get("url"):
            return False, "Missing required param: 'url'"
        if kind == "download" and not params.get("dest"):
            return False, "Missing required param: 'dest'"
        return True, ""

    def describe(self, context: ExecutionContext) -> str:
        params = context.params
        kind = context.action.kind
        if kind == "github_release":
            return f"resolve latest release of {params['repo']} into {{{params.get('fact', 'version')}}}"
        if kind == "download":
            text = f"download {params['url']} -> {params['dest']}"
            if params.get("mode"):
                text += f" (mode {params['mode']})"
            return text

        lines = [f"download + extract {params['url']}"]
        for src, dest in (params.get("install") or {}).items():
            lines.append(f"install {src} -> {dest}")
        return "\n".join(lines)

    def execute(self, context: ExecutionContext) -> Receipt:
        kind = context.action.kind
        try:
            if kind == "github_release":
                return self._github_release(context)
            if kind == "download":
                return self._download(context)
            return self._archive(context)
        except (DownloadError, OSError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=str(e),
                metadata={"url": context.params.get("url") or context.params.get("repo")},
            )

    def _github_release(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.params
        tag = latest_release_tag(params["repo"], timeout=min(ctx.download_timeout, 30))
        value = tag[1:] if params.get("strip_v") and tag.startswith("v") else tag
        fact = params.get("fact") or "version"
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"{params['repo']} latest release: {tag}",
            metadata={"facts": {fact: value}, "tag": tag},
        )

    def _download(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.params
        url = params["url"]
        staged = Path(ctx.work_dir) / _url_basename(url)
        size = fetch(url, staged, timeout=ctx.download_timeout)

        expected = params.get("sha256")
        if expected:
            actual = sha256_of(staged)
            if actual != expected.lower():
                raise DownloadError(f"Checksum mismatch for {staged.name}: {actual}")

        dest = params["dest"]
        mode = str(params.get("mode") or "644")
        result = ctx.run(["install", "-D", "-m", mode, str(staged), dest])
        if not result["ok"]:
            return self._from_result(ctx, result)

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Downloaded {url} to {dest} ({size} bytes)",
            metadata={"path": dest, "size": size},
        )

    def _archive(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.params
        url = params["url"]
        fmt = archive_format(url, params.get("format"))
        work = Path(ctx.work_dir)

        staged = work / _url_basename(url)
        fetch(url, staged, timeout=ctx.download_timeout)
        root = work / params["extract_dir"] if params.get("extract_dir") else work
        extract(staged, fmt, root)
        staged.unlink(missing_ok=True)

        commands: list[list[str]] = []
        for src_rel, dest in (params.get("install") or {}).items():
            src = root / src_rel
            if not src.exists():
                found = ", ".join(sorted(p.name for p in root.iterdir())[:10])
                raise DownloadError(f"{src_rel} not found in archive (found: {found})")
            commands += install_commands(str(src), dest, Path(dest).is_dir(), src.is_dir())

        facts: dict[str, Any] = {"archive_dir": str(root)}
        if not commands:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=f"Extracted {url} to {root}",
                metadata={"facts": facts},
            )

        logger.debug("Installing archive members:\n%s", format_commands(commands))
        receipt = self._run_all(ctx, commands)
        if receipt.ok:
            receipt.output = f"Installed {len(params['install'])} item(s) from {_url_basename(url)}"
            receipt.metadata["facts"] = facts
        return receipt
