"""goforge template rendering engine.

Schema-checked Jinja2 rendering plus the stores and cache that supply
template records.

Quick usage::

    from goforge.templating import BuiltinTemplateStore, TemplateCache, TemplateEngine

    cache = TemplateCache(BuiltinTemplateStore())
    record = await cache.get("struct")
    source = TemplateEngine().render(record, {"package": "domain", ...})
"""

from goforge.templating.cache import ReadWriteLock, TemplateCache
from goforge.templating.engine import (
    TemplateEngine,
    TemplateError,
    TemplateNotFoundError,
    TemplateParameter,
    TemplateRecord,
)
from goforge.templating.store import BuiltinTemplateStore, HttpTemplateStore, TemplateStore

__all__ = [
    "BuiltinTemplateStore",
    "HttpTemplateStore",
    "ReadWriteLock",
    "TemplateCache",
    "TemplateEngine",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateParameter",
    "TemplateRecord",
    "TemplateStore",
]
