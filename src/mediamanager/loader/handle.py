"""Typed handle returned to callers for an in-flight picture load."""

from __future__ import annotations

from dataclasses import dataclass, field

from mediamanager.loader.media_loader import MediaLoader
from mediamanager.types import LoaderState


@dataclass(frozen=True)
class LoaderHandle:
    """Opaque reference to one in-flight fetch, used for cancellation.

    The handle stays a valid object after the load ends, but cancelling it
    then has no effect.
    """

    handle_id: int
    url: str
    _loader: MediaLoader = field(repr=False, compare=False)

    @property
    def state(self) -> LoaderState:
        return self._loader.state

    @property
    def done(self) -> bool:
        return self._loader.done

    async def wait(self) -> None:
        await self._loader.wait()
