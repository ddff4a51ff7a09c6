"""Template stores: where template text and parameter schemas come from.

The rendering core only depends on the :class:`TemplateStore` protocol.
Two implementations ship with goforge:

* :class:`BuiltinTemplateStore` -- the Go templates bundled under
  ``goforge/templating/builtin/`` and described by ``catalog.yaml``.
* :class:`HttpTemplateStore` -- a remote template service reached over
  HTTP with ``httpx``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx
import yaml

from goforge.templating.engine import TemplateError, TemplateNotFoundError, TemplateRecord
from goforge.utils import console

_BUILTIN_DIR = Path(__file__).parent / "builtin"


@runtime_checkable
class TemplateStore(Protocol):
    """Read-only access to templates keyed by slug."""

    async def get_template_by_slug(self, slug: str) -> TemplateRecord: ...

    async def increment_usage(self, template_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------


class BuiltinTemplateStore:
    """Serves the Go templates bundled with the package.

    ``catalog.yaml`` maps each slug to its template file and parameter
    schema.  Usage counts are kept in memory for diagnostics.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else _BUILTIN_DIR
        self.usage: dict[str, int] = {}
        self._catalog: dict[str, dict] | None = None

    def _load_catalog(self) -> dict[str, dict]:
        if self._catalog is None:
            raw = (self.template_dir / "catalog.yaml").read_text(encoding="utf-8")
            self._catalog = yaml.safe_load(raw).get("templates", {})
        return self._catalog

    def list_slugs(self) -> list[str]:
        return sorted(self._load_catalog())

    async def get_template_by_slug(self, slug: str) -> TemplateRecord:
        entry = self._load_catalog().get(slug)
        if entry is None:
            raise TemplateNotFoundError(f"no built-in template named {slug!r}", slug=slug)
        content = (self.template_dir / entry["file"]).read_text(encoding="utf-8")
        return TemplateRecord(
            id=f"builtin:{slug}",
            slug=slug,
            name=entry.get("name", slug),
            category=entry.get("category", ""),
            content=content,
            parameters=entry.get("parameters", []),
        )

    async def increment_usage(self, template_id: str) -> None:
        self.usage[template_id] = self.usage.get(template_id, 0) + 1


# ---------------------------------------------------------------------------
# Remote template service
# ---------------------------------------------------------------------------


class HttpTemplateStore:
    """Async client for a remote template service.

    Endpoints::

        GET  /api/v1/templates/slug/{slug}   -> template JSON
        POST /api/v1/templates/{id}/usage    -> 204
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    async def get_template_by_slug(self, slug: str) -> TemplateRecord:
        """Fetch one template.

        Raises:
            TemplateNotFoundError: On HTTP 404.
            TemplateError: When the service is unreachable or returns an
                error or a malformed body.
        """
        try:
            async with self._client() as client:
                response = await client.get(f"/api/v1/templates/slug/{slug}")
                if response.status_code == 404:
                    raise TemplateNotFoundError(f"template service has no template {slug!r}", slug=slug)
                response.raise_for_status()
                data = response.json()
        except httpx.ConnectError as exc:
            raise TemplateError(f"cannot connect to template service at {self.base_url}", slug=slug) from exc
        except httpx.TimeoutException as exc:
            raise TemplateError(f"template service timed out after {self.timeout}s", slug=slug) from exc
        except httpx.HTTPStatusError as exc:
            raise TemplateError(
                f"template service returned HTTP {exc.response.status_code}", slug=slug
            ) from exc
        except ValueError as exc:
            raise TemplateError(f"template service returned invalid JSON: {exc}", slug=slug) from exc

        data.setdefault("slug", slug)
        try:
            return TemplateRecord.model_validate(data)
        except ValueError as exc:
            raise TemplateError(f"malformed template payload: {exc}", slug=slug) from exc

    async def increment_usage(self, template_id: str) -> None:
        """Record a template use.  Failures are ignored; usage is advisory."""
        try:
            async with self._client() as client:
                await client.post(f"/api/v1/templates/{template_id}/usage")
        except httpx.HTTPError as exc:
            console.print(f"[dim]template usage not recorded for {template_id}: {exc}[/dim]")
