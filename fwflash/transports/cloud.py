"""Cloud API client: device directory lookups and over-the-air flashing."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import ExitStack
from pathlib import Path
from typing import Any

import requests

from fwflash.core.errors import CloudApiError, TransportConnectError
from fwflash.core.settings import Settings
from fwflash.transports.base import ConfirmFn

LOGGER = logging.getLogger(__name__)


def _expand_files(files: Sequence[str]) -> list[Path]:
    paths: list[Path] = []
    for name in files:
        path = Path(name)
        if path.is_dir():
            paths.extend(sorted(p for p in path.rglob("*") if p.is_file() and not p.name.startswith(".")))
        elif path.is_file():
            paths.append(path)
        else:
            raise CloudApiError(f"{name} does not exist")
    return paths


class CloudApi:
    def __init__(self, settings: Settings, *, session: requests.Session | None = None, timeout_s: float = 30.0) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if not self.settings.access_token:
            raise CloudApiError("No access token configured. Set FWFLASH_ACCESS_TOKEN or access_token in settings.yaml.")
        url = f"{self.settings.api_url}{path}"
        headers = {"Authorization": f"Bearer {self.settings.access_token}"}
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout_s, **kwargs)
        except requests.RequestException as exc:
            raise TransportConnectError(f"{method} {url} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok:
            detail = body.get("error_description") or body.get("error") or response.reason
            raise CloudApiError(f"{method} {path} returned {response.status_code}: {detail}", response.status_code)
        return body

    def get_device(self, device: str) -> dict[str, Any]:
        return self._request("GET", f"/v1/devices/{device}")

    def flash_device(self, device: str, files: Sequence[Path], *, target: str | None = None) -> dict[str, Any]:
        data = {"build_target_version": target} if target else {}
        with ExitStack() as stack:
            upload = {
                f"file{i}" if i else "file": (path.name, stack.enter_context(path.open("rb")))
                for i, path in enumerate(files)
            }
            return self._request("PUT", f"/v1/devices/{device}", files=upload, data=data)


class CloudFlasher:
    def __init__(self, api: CloudApi, *, confirm: ConfirmFn | None = None) -> None:
        self.api = api
        self.confirm = confirm

    def flash_device(
        self,
        device: str,
        files: Sequence[str],
        *,
        target: str | None = None,
        yes: bool = False,
    ) -> None:
        paths = _expand_files(files)
        if not paths:
            raise CloudApiError("No files to flash")

        info = self.api.get_device(device)
        product_id = info.get("product_id")
        if product_id is not None and product_id != info.get("platform_id") and not yes:
            prompt = f"Device {device} belongs to product {product_id}. Flash it anyway?"
            if self.confirm is None or not self.confirm(prompt):
                raise CloudApiError(f"Refusing to flash product device {device} without --yes")

        LOGGER.info("Flashing %d file(s) to %s over the cloud", len(paths), device)
        body = self.api.flash_device(info.get("id", device), paths, target=target)
        if body.get("ok") is False:
            errors = body.get("errors") or [body.get("error", "unknown error")]
            raise CloudApiError(f"Cloud flash failed: {'; '.join(str(e) for e in errors)}")
