from __future__ import annotations

import pydantic as p
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Factory, Provider

from scoresync.lib.vendor.canvas import CanvasClient

from ..config import CanvasSettings


def provide_client(config: CanvasSettings, access_token: p.Secret[str] | None) -> CanvasClient:
    """A new client per call; the caller owns it and must close it (`async with`)."""
    if access_token is None:
        raise ValueError(
            "Canvas access token required: set canvas.access_token in secrets.yaml or SCORESYNC_CANVAS__ACCESS_TOKEN"
        )
    return CanvasClient(
        str(config.base_url),
        access_token,
        timeout=config.timeout_seconds,
        per_page=config.per_page,
    )


class CanvasContainer(DeclarativeContainer):
    config: Configuration = Configuration()
    secrets: Configuration = Configuration()

    client: Provider[CanvasClient] = Factory(
        provide_client, config=config.as_(CanvasSettings), access_token=secrets.access_token
    )
