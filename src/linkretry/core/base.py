"""Base classes shared by configuration and logging models.

Kept apart from config.py and log.py so that both can import them
without a cycle:
- Closeable Protocol for anything that owns resources
- BaseCloseable, which closes its Closeable fields on exit
- BaseConfig as the marker for configuration sections
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Model that closes every Closeable field when it is closed.

    Subclasses become context managers. Closing walks the model
    fields and calls close() on each child that supports it, so
    Config.close() reaches Logger.close() and from there each sink.
    A failing child does not stop the remaining ones from closing.
    """

    def close(self):
        """Close all Closeable children, reporting failures on
        stderr."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None or not isinstance(child, Closeable):
                continue
            try:
                child.close()
            except Exception as e:
                print(
                    f"Warning: Error closing {field_name}: {e}",
                    file=sys.stderr,
                )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/CLI)."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig"]
